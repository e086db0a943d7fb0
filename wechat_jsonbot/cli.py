"""Click CLI for configuring the WeChat channel and sending test replies."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

import click

from wechat_jsonbot.audit.logger import rotated_backup, validate_audit_chain
from wechat_jsonbot.channel.onboarding import WechatOnboardingAdapter
from wechat_jsonbot.channel.outbound import JsonBotClient, send_media, send_text
from wechat_jsonbot.config import config_path_from_env, load_host_config, save_host_config
from wechat_jsonbot.errors import WechatJsonBotError
from wechat_jsonbot.models import SendResult


class ClickPrompter:
    """Onboarding prompter backed by ``click.prompt``."""

    async def text(
        self,
        *,
        message: str,
        placeholder: str | None = None,
        initial_value: str | None = None,
        validate: Callable[[str], str | None] | None = None,
    ) -> str:
        prompt = f"{message} ({placeholder})" if placeholder and not initial_value else message
        while True:
            value = click.prompt(
                prompt,
                default=initial_value or "",
                show_default=bool(initial_value),
            )
            error = validate(value) if validate else None
            if error is None:
                return value
            click.echo(error, err=True)


def _echo_send_result(result: SendResult) -> None:
    click.echo(result.model_dump_json(indent=2))


@click.group()
@click.option(
    "--config",
    "config_path",
    default=config_path_from_env,
    show_default="$WECHAT_JSONBOT_CONFIG or config/openclaw.json",
    help="Path to the host config JSON.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """WeChat (json_bot) channel tools."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["onboarding"] = WechatOnboardingAdapter()


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show whether the channel is configured."""
    onboarding: WechatOnboardingAdapter = ctx.obj["onboarding"]
    cfg = load_host_config(ctx.obj["config_path"])
    result = asyncio.run(onboarding.get_status(cfg))
    click.echo(result.model_dump_json(indent=2))


@cli.command()
@click.pass_context
def configure(ctx: click.Context) -> None:
    """Prompt for the json_bot base URL and inbound token."""
    onboarding: WechatOnboardingAdapter = ctx.obj["onboarding"]
    cfg = load_host_config(ctx.obj["config_path"])
    result = asyncio.run(onboarding.configure(cfg, ClickPrompter()))
    save_host_config(ctx.obj["config_path"], result.cfg)
    click.echo(f"WeChat configured in {ctx.obj['config_path']}")


@cli.command()
@click.pass_context
def disable(ctx: click.Context) -> None:
    """Disable the channel, keeping its settings."""
    onboarding: WechatOnboardingAdapter = ctx.obj["onboarding"]
    cfg = load_host_config(ctx.obj["config_path"])
    save_host_config(ctx.obj["config_path"], onboarding.disable(cfg))
    click.echo("WeChat disabled")


@cli.command("send-text")
@click.argument("to")
@click.argument("text")
@click.pass_context
def send_text_command(ctx: click.Context, to: str, text: str) -> None:
    """Send TEXT to the WeChat session TO."""
    cfg = load_host_config(ctx.obj["config_path"])
    try:
        result = asyncio.run(send_text(JsonBotClient(), cfg, to, text))
    except WechatJsonBotError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_send_result(result)


@cli.command("send-media")
@click.argument("to")
@click.argument("media_url")
@click.option("--caption", default=None, help="Text sent before the file.")
@click.pass_context
def send_media_command(
    ctx: click.Context, to: str, media_url: str, caption: str | None,
) -> None:
    """Send MEDIA_URL as a file to the WeChat session TO."""
    cfg = load_host_config(ctx.obj["config_path"])
    try:
        result = asyncio.run(send_media(JsonBotClient(), cfg, to, media_url, caption))
    except WechatJsonBotError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_send_result(result)


@cli.command("audit-verify")
@click.argument("log_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def audit_verify(log_path: Path) -> None:
    """Check the hash chain of an audit log and its rotation boundary."""
    backup = rotated_backup(log_path)
    result = validate_audit_chain(log_path, backup if backup.exists() else None)
    click.echo(json.dumps({"valid": result.valid, "broken_at_line": result.broken_at_line}))
    if not result.valid:
        raise SystemExit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()

"""WeChat channel definition, accounts, onboarding and outbound delivery."""

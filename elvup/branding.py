"""Centralized branding constants — single source of truth for version."""


class AppBranding:
    """Application identity constants."""

    APP_NAME = "ElvUp"
    ADDON_NAME = "ElvUI"
    VERSION = "0.1.0"

    @classmethod
    def user_agent(cls) -> str:
        return f"{cls.APP_NAME}/{cls.VERSION}"

    @classmethod
    def description(cls) -> str:
        return f"Installs / updates {cls.ADDON_NAME}"

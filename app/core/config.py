"""Application configuration loaded from environment variables."""

from typing import Optional

from pydantic_settings import BaseSettings

from app.schemas.payment_file import DebtorConfiguration, GenerationOptions


class Settings(BaseSettings):
    """Application settings with defaults and env var overrides."""

    # App
    app_env: str = "development"
    app_port: int = 8000
    log_level: str = "INFO"

    # Debtor (the organisation paying the refunds out)
    debtor_name: str = "Les Aperos du chateau"
    debtor_iban: str = "BE68539007547034"
    debtor_bic: str = "GKCCBEBB"
    debtor_address_line1: Optional[str] = None
    debtor_address_line2: Optional[str] = None
    debtor_country: str = "BE"
    debtor_organization_id: Optional[str] = None
    debtor_organization_issuer: Optional[str] = None

    # Payment file generation
    message_id_prefix: str = "CBC"
    payment_info_id_prefix: str = "PMT"
    remittance_text: str = "Remboursement Les Aperos du chateau"
    max_refunds_per_file: int = 5000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def debtor_configuration(self) -> DebtorConfiguration:
        """Build the immutable debtor identity from the debtor_* settings."""
        return DebtorConfiguration(
            name=self.debtor_name,
            iban=self.debtor_iban,
            bic=self.debtor_bic,
            address_line1=self.debtor_address_line1,
            address_line2=self.debtor_address_line2,
            country=self.debtor_country,
            organization_id=self.debtor_organization_id,
            organization_issuer=self.debtor_organization_issuer,
        )

    def generation_options(self, **overrides) -> GenerationOptions:
        """Default generation options, optionally overridden per request."""
        values = {
            "message_id_prefix": self.message_id_prefix,
            "payment_info_id_prefix": self.payment_info_id_prefix,
            "remittance_text": self.remittance_text,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return GenerationOptions(**values)


settings = Settings()

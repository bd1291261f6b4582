from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tax_calc import DiscountTaxPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # App
    APP_NAME: str = Field(default="gst_billing", validation_alias=AliasChoices("APP_NAME", "app_name"))
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))

    # Business profile (seller side of every sale invoice)
    SELLER_NAME: str = Field(
        default="Friends Group Company Pvt. Ltd.",
        validation_alias=AliasChoices("SELLER_NAME", "seller_name"),
    )
    SELLER_GSTIN: str = Field(default="27ABCDE1234F1Z5", validation_alias=AliasChoices("SELLER_GSTIN", "seller_gstin"))
    SELLER_STATE: str = Field(default="Maharashtra", validation_alias=AliasChoices("SELLER_STATE", "seller_state"))

    # Invoicing
    MAX_LINE_ITEMS: int = Field(default=8, ge=1, validation_alias=AliasChoices("MAX_LINE_ITEMS", "max_line_items"))
    DISCOUNT_TAX_POLICY: DiscountTaxPolicy = Field(
        default=DiscountTaxPolicy.PER_ITEM,
        validation_alias=AliasChoices("DISCOUNT_TAX_POLICY", "discount_tax_policy"),
    )
    INVOICE_PREFIX_SALE: str = Field(default="INV", validation_alias=AliasChoices("INVOICE_PREFIX_SALE", "invoice_prefix_sale"))
    INVOICE_PREFIX_PURCHASE: str = Field(
        default="PUR",
        validation_alias=AliasChoices("INVOICE_PREFIX_PURCHASE", "invoice_prefix_purchase"),
    )

    # HSN lookup
    HSN_CSV_PATH: str = Field(default="data/hsn_rates.csv", validation_alias=AliasChoices("HSN_CSV_PATH", "hsn_csv_path"))
    HSN_MIN_SCORE: float = Field(default=60.0, validation_alias=AliasChoices("HSN_MIN_SCORE", "hsn_min_score"))


settings = Settings()

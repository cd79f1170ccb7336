# app/core/config.py
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import AnyHttpUrl # AnyHttpUrl stays in pydantic core
from functools import lru_cache
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

class Settings(BaseSettings):
    PROJECT_NAME: str = "x402 Payment Gate"
    LOG_LEVEL: str = "INFO"

    # Payment receiver and facilitator
    RECEIVER_ADDRESS: str = "0xYourReceiverAddress"
    FACILITATOR_URL: AnyHttpUrl = "https://facilitator.example.com" # validates that it's a URL

    # Content served once payment is verified
    PROTECTED_CONTENT: str = "This is the protected content that requires payment to access."

    # x402 payment terms
    X402_ENABLED: bool = True
    X402_NETWORK: str = "eip155:1"
    X402_PAYMENT_AMOUNT: str = "1000000000" # 1 USDC (6 decimals)
    X402_ASSET_ADDRESS: str = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48" # USDC mainnet
    X402_ASSET_NAME: str = "USDC"
    X402_ASSET_VERSION: str = "2"
    X402_MAX_TIMEOUT_SECONDS: int = 30
    X402_RESOURCE_DESCRIPTION: str = "Access to protected resource"

    # Empty path disables the audit trail
    X402_AUDIT_LOG_PATH: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env

@lru_cache() # Cache the settings object for performance
def get_settings() -> Settings:
    return Settings()

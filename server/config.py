"""Configuration for the Design Vault API server."""

import os
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Settings:
    """
    Everything the server reads from the environment.

    Every field is overridable at construction for testing.
    """
    database_url: Optional[str] = None
    session_secret: Optional[str] = None
    cors_origins: List[str] = field(default_factory=list)

    # Image upload provider (Cloudinary-style unsigned upload)
    cloudinary_cloud: Optional[str] = None
    cloudinary_preset: Optional[str] = None
    cloudinary_base_url: str = "https://api.cloudinary.com/v1_1"
    upload_timeout_s: float = 30.0
    max_upload_size_mb: float = 20.0

    # Coins credited per graded card at the end of a study session
    coin_reward_good: int = 1
    coin_reward_easy: int = 2

    def __post_init__(self):
        if self.database_url is None:
            self.database_url = os.environ.get("DATABASE_URL", "sqlite:///./vault.db")
        if self.session_secret is None:
            self.session_secret = os.environ.get("SESSION_SECRET", "dev-secret-change-in-production")
        if not self.cors_origins:
            env_origins = os.environ.get("CORS_ORIGINS", "http://localhost:3000")
            self.cors_origins = [o.strip() for o in env_origins.split(",") if o.strip()]

        if self.cloudinary_cloud is None:
            self.cloudinary_cloud = os.environ.get("CLOUDINARY_CLOUD") or None
        if self.cloudinary_preset is None:
            self.cloudinary_preset = os.environ.get("CLOUDINARY_PRESET") or None
        if os.environ.get("CLOUDINARY_BASE_URL"):
            self.cloudinary_base_url = os.environ["CLOUDINARY_BASE_URL"]

        try:
            if v := os.environ.get("UPLOAD_TIMEOUT_S"):
                self.upload_timeout_s = float(v)
        except ValueError:
            pass
        try:
            if v := os.environ.get("MAX_UPLOAD_SIZE_MB"):
                self.max_upload_size_mb = float(v)
        except ValueError:
            pass
        try:
            if v := os.environ.get("COIN_REWARD_GOOD"):
                self.coin_reward_good = int(v)
        except ValueError:
            pass
        try:
            if v := os.environ.get("COIN_REWARD_EASY"):
                self.coin_reward_easy = int(v)
        except ValueError:
            pass

    @property
    def coin_rewards(self) -> dict:
        return {"again": 0, "good": self.coin_reward_good, "easy": self.coin_reward_easy}

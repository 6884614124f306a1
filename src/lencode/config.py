"""Centralized encoding configuration using Pydantic."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class GlmConfig(BaseModel):
    trim: float = Field(default=0.1, ge=0.0, lt=0.5)
    max_iter: int = 100
    tol: float = 1e-8


class BayesConfig(BaseModel):
    vcp_p: float = 1.0
    fe_p: float = 2.0
    max_iter: int = 200


class MixedConfig(BaseModel):
    smoothing: float | None = Field(default=None, ge=0.0)
    eps: float = 1e-6


class Settings(BaseSettings):
    glm: GlmConfig = GlmConfig()
    bayes: BayesConfig = BayesConfig()
    mixed: MixedConfig = MixedConfig()

    model_config = {"env_prefix": "LENCODE_", "env_nested_delimiter": "__"}


def load_settings(params_path: Path | None = None) -> Settings:
    """Load settings from params.yaml, falling back to defaults."""
    params_path = params_path or PROJECT_ROOT / "params.yaml"
    if params_path.exists():
        with open(params_path) as f:
            params = yaml.safe_load(f) or {}
        return Settings(**params)
    return Settings()

"""
Connection settings for VCDClient, loaded from YAML or the environment
"""

import os
from pathlib import Path
from typing import Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator, model_validator

from .exceptions import ConfigError

TOKEN_TYPE_BEARER = "bearer"
TOKEN_TYPE_API_TOKEN = "api_token"
TOKEN_TYPE_SESSION = "session"

ENV_PREFIX = "VCDLIB_"


class VCDConfig(BaseModel):
    """How to reach and authenticate against one Cloud Director"""

    url: str = Field(..., description="API URL, such as https://vcd.example.com/api")
    user: Optional[str] = Field(None, description="User name, without @org")
    password: Optional[SecretStr] = Field(None, description="Password (prefer password_env)")
    password_env: Optional[str] = Field(None, description="Environment variable containing the password")
    org: str = Field("System", description="Organization to log into")
    token: Optional[SecretStr] = Field(None, description="Bearer, session or API token")
    token_type: str = Field(TOKEN_TYPE_BEARER, pattern="^(bearer|api_token|session)$")
    api_token_file: Optional[Path] = Field(None, description="JSON file holding an API token")
    service_account: bool = Field(False, description="api_token_file belongs to a service account")
    insecure: bool = Field(False, description="Skip TLS certificate verification")
    api_version: Optional[str] = Field(None, description="API version, defaults to the client's")
    http_timeout: int = Field(600, ge=1, description="HTTP timeout in seconds")
    max_retry_timeout: int = Field(60, ge=0, description="Task wait timeout in seconds")
    user_agent: Optional[str] = Field(None)
    http_headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("url")
    @classmethod
    def ensure_api_path(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"url must start with http:// or https://, got '{v}'")
        if not v.endswith("/api"):
            v += "/api"
        return v

    @model_validator(mode="after")
    def resolve_credentials(self) -> "VCDConfig":
        if self.password is None and self.password_env:
            env_val = os.environ.get(self.password_env)
            if env_val:
                self.password = SecretStr(env_val)
        has_password = self.user and self.password is not None
        if not has_password and self.token is None and self.api_token_file is None:
            raise ValueError("one of user/password, token or api_token_file must be provided")
        return self

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "VCDConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as err:
            raise ConfigError(f"error reading configuration file {path}: {err}") from err
        try:
            return cls(**data)
        except ValidationError as err:
            raise ConfigError(f"invalid configuration in {path}: {err}") from err

    @classmethod
    def from_env(cls, **overrides) -> "VCDConfig":
        """Build config from VCDLIB_* environment variables, with keyword overrides"""
        base = {
            "url": os.environ.get(f"{ENV_PREFIX}URL", ""),
            "user": os.environ.get(f"{ENV_PREFIX}USER"),
            "password_env": f"{ENV_PREFIX}PASSWORD",
            "org": os.environ.get(f"{ENV_PREFIX}ORG", "System"),
            "token": os.environ.get(f"{ENV_PREFIX}TOKEN"),
            "token_type": os.environ.get(f"{ENV_PREFIX}TOKEN_TYPE", TOKEN_TYPE_BEARER),
            "api_token_file": os.environ.get(f"{ENV_PREFIX}API_TOKEN_FILE"),
            "insecure": os.environ.get(f"{ENV_PREFIX}INSECURE", "false").lower() == "true",
            "api_version": os.environ.get(f"{ENV_PREFIX}API_VERSION"),
        }
        base.update(overrides)
        base = {key: value for key, value in base.items() if value is not None}
        try:
            return cls(**base)
        except ValidationError as err:
            raise ConfigError(f"invalid configuration from environment: {err}") from err

    def password_value(self) -> str:
        return self.password.get_secret_value() if self.password is not None else ""

    def token_value(self) -> str:
        return self.token.get_secret_value() if self.token is not None else ""

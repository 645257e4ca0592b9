"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Maps the configured quality to the store's API value and the file extension
QUALITY_MAP = {
    "lossless": {"name": "FLAC Lossless", "short": "FLAC", "ext": "flac"},
    "high": {"name": "AAC 256kbps", "short": "AAC 256", "ext": "m4a"},
    "medium": {"name": "AAC 128kbps", "short": "AAC 128", "ext": "m4a"},
}

# Public client ID of the Beatport API docs frontend
DEFAULT_CLIENT_ID = "ryZ8LuyQVPqbK2mBX2Hwt4qSMtnWuTYSqBPO92yQ"

DEFAULT_OUTPUT_TEMPLATE = (
    "{release}/%{?number,{number}. |}{artists} - {name}"
    "%{?mix_name, ({mix_name})|}.{ext}"
)


def get_quality_info(quality: str) -> dict[str, str]:
    """Gets all information for a given quality from the central map."""
    return QUALITY_MAP.get(
        quality, {"name": "Unknown", "short": "Unknown", "ext": "flac"}
    )


class AppConfig(BaseModel):
    """A validated configuration model for one account."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Authentication & network
    username: str = ""
    password: str = ""
    client_id: str = DEFAULT_CLIENT_ID
    proxy: str = ""

    # Download Settings
    quality: str = "lossless"
    max_global_workers: int = 2
    max_download_workers: int = 4
    downloads_directory: str = "."
    output_template: str = DEFAULT_OUTPUT_TEMPLATE

    # Tagging and File Options
    write_tags: bool = True
    save_cover: bool = False
    write_error_log: bool = False

    # Internal fields not loaded from INI file
    account_name: str = Field("default", repr=False)
    config_path: str = Field("", repr=False)

    @field_validator("quality")
    @classmethod
    def validate_quality(cls, v: str) -> str:
        """Ensures quality is one of the qualities offered by the stores."""
        v = v.lower()
        if v not in QUALITY_MAP:
            raise ValueError(
                f"Quality must be one of: {', '.join(QUALITY_MAP)} (got '{v}')."
            )
        return v

    @field_validator("max_global_workers", "max_download_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of workers."""
        if v < 1 or v > 32:
            raise ValueError("Worker counts must be between 1 and 32.")
        return v

    @field_validator("output_template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        """Validates the output path template."""
        if not v:
            raise ValueError("Output template cannot be empty.")
        if ".." in v or v.startswith(("/", "\\")):
            raise ValueError(
                "Output template cannot contain relative '..' or absolute paths."
            )
        if "{name}" not in v and "{number}" not in v:
            raise ValueError("Output template must contain at least {name} or {number}.")
        return v

    @field_validator("proxy")
    @classmethod
    def validate_proxy(cls, v: str) -> str:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Proxy must be an http:// or https:// URL.")
        return v

    @model_validator(mode="after")
    def validate_credentials(self) -> "AppConfig":
        """Validates that the account can log in."""
        if not self.username or not self.password:
            raise ValueError(
                f"Account '{self.account_name}' needs both a username and a password."
            )
        if not self.client_id:
            raise ValueError("A client_id is required to request access tokens.")
        return self

    @property
    def proxy_url(self) -> str | None:
        return self.proxy or None

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"account_name", "config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}

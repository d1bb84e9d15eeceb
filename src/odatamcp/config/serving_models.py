"""Serving configuration for the OData MCP bridge."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

from odatamcp.mcp.models import OperationKind

METADATA_SUFFIX = "/$metadata"

_TOGGLE_TOKENS: dict[str, tuple[str, bool]] = {
    "+c": ("count", True),
    "-c": ("count", False),
    "+g": ("get", True),
    "-g": ("get", False),
    "+f": ("filter", True),
    "-f": ("filter", False),
}


class ToolToggles(BaseModel):
    """Process-lifetime switches controlling which tool kinds are generated."""

    model_config = ConfigDict(frozen=True)

    count: bool = Field(default=True, description="Generate count_* tools (+c / -c).")
    get: bool = Field(default=True, description="Generate get_* tools (+g / -g).")
    filter: bool = Field(default=False, description="Generate filter_* tools (+f / -f).")

    def enabled(self, kind: OperationKind) -> bool:
        """
        Report whether tools of the given kind are enabled.

        Parameters
        ----------
        kind:
            Operation kind to check.

        Returns
        -------
        bool
            ``True`` when the kind is switched on.
        """
        return bool(getattr(self, kind.value))


def parse_tool_options(tokens: Iterable[str]) -> tuple[ToolToggles, list[str]]:
    """
    Fold ``+c/-c/+g/-g/+f/-f`` tokens into toggles; later tokens win.

    Parameters
    ----------
    tokens:
        Raw option tokens following the metadata URL. Matching ignores case.

    Returns
    -------
    tuple[ToolToggles, list[str]]
        Resulting toggles and the tokens that were not recognized.
    """
    values = ToolToggles().model_dump()
    unknown: list[str] = []
    for token in tokens:
        match = _TOGGLE_TOKENS.get(token.lower())
        if match is None:
            unknown.append(token)
            continue
        field_name, enabled = match
        values[field_name] = enabled
    return ToolToggles(**values), unknown


def normalize_metadata_url(url: str) -> str:
    """
    Normalize a service or metadata URL to the ``$metadata`` document URL.

    Returns
    -------
    str
        URL ending with ``/$metadata`` and without a trailing slash.
    """
    normalized = url.strip().rstrip("/")
    if not normalized.lower().endswith(METADATA_SUFFIX.lower()):
        normalized = f"{normalized}{METADATA_SUFFIX}"
    return normalized


def service_base_url(metadata_url: str) -> str:
    """
    Derive the service root that entity set paths are appended to.

    Returns
    -------
    str
        Metadata URL with the ``/$metadata`` segment removed.
    """
    if metadata_url.lower().endswith(METADATA_SUFFIX.lower()):
        return metadata_url[: -len(METADATA_SUFFIX)]
    return metadata_url.replace(METADATA_SUFFIX, "")


class ServerConfig(BaseModel):
    """
    Runtime settings for the OData MCP server.

    Built once at startup from the command line plus environment overrides;
    immutable afterwards.
    """

    model_config = ConfigDict(frozen=True)

    metadata_url: str = Field(description="URL of the service $metadata document.")
    base_url: str = Field(default="", description="Service root; derived from metadata_url.")
    toggles: ToolToggles = Field(default_factory=ToolToggles)
    timeout_seconds: float = Field(
        default=30.0,
        description="Timeout in seconds for remote OData calls.",
    )
    log_dir: Path = Field(
        default=Path("logs"),
        description="Directory for rotated log files when not attached to a terminal.",
    )

    @classmethod
    def from_args(
        cls,
        metadata_url: str,
        toggles: ToolToggles | None = None,
        *,
        environ: dict[str, str] | None = None,
    ) -> ServerConfig:
        """
        Construct a ServerConfig from CLI values and environment variables.

        Parameters
        ----------
        metadata_url:
            Service root or ``$metadata`` URL as passed on the command line.
        toggles:
            Tool toggles parsed from the command line.
        environ:
            Environment mapping; defaults to ``os.environ``.

        Returns
        -------
        ServerConfig
            Validated configuration.
        """
        env = os.environ if environ is None else environ
        timeout_seconds = float(env.get("ODATA_MCP_TIMEOUT_SEC", "30.0"))
        log_dir = Path(env.get("ODATA_MCP_LOG_DIR", "logs")).expanduser()
        return cls(
            metadata_url=metadata_url,
            toggles=toggles or ToolToggles(),
            timeout_seconds=timeout_seconds,
            log_dir=log_dir,
        )

    @model_validator(mode="before")
    @classmethod
    def _normalize_urls(cls, values: object) -> object:
        """
        Normalize the metadata URL and derive the base URL.

        Returns
        -------
        object
            Input values with normalized URLs.

        Raises
        ------
        ValueError
            When the metadata URL is empty.
        """
        if not isinstance(values, dict):
            return values
        raw = str(values.get("metadata_url") or "").strip()
        if not raw:
            message = "metadata_url is required"
            raise ValueError(message)
        metadata_url = normalize_metadata_url(raw)
        normalized = dict(values)
        normalized["metadata_url"] = metadata_url
        if not normalized.get("base_url"):
            normalized["base_url"] = service_base_url(metadata_url)
        return normalized

    @model_validator(mode="after")
    def _validate_limits(self) -> ServerConfig:
        """
        Validate numeric settings.

        Returns
        -------
        ServerConfig
            The validated configuration.

        Raises
        ------
        ValueError
            When the timeout is not positive.
        """
        if self.timeout_seconds <= 0:
            message = "timeout_seconds must be positive"
            raise ValueError(message)
        return self

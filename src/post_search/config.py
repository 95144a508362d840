"""Centralized configuration for post-search using Pydantic Settings."""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from post_search.search.schema import SearchScope, TextField, english_stopwords


class ObservabilityCollectorConfig(BaseModel):
    """Configuration for OTLP export of traces, metrics and logs."""

    model_config = {"extra": "forbid"}

    enabled: Annotated[
        bool,
        Field(
            description="Enable OTLP export to an external collector",
        ),
    ] = False

    otlp_protocol: Annotated[
        Literal["http", "grpc"],
        Field(
            description="OTLP transport protocol",
        ),
    ] = "grpc"

    collector_endpoint: Annotated[
        str,
        Field(
            description="OTLP collector endpoint (HTTP uses /v1/traces)",
            examples=["http://localhost:4317", "http://localhost:4318/v1/traces"],
        ),
    ] = "http://localhost:4317"

    headers: Annotated[
        dict[str, str],
        Field(
            description="Optional headers to include with OTLP requests",
        ),
    ] = Field(default_factory=dict)

    timeout_seconds: Annotated[
        int,
        Field(
            ge=1,
            le=60,
            description="OTLP exporter timeout in seconds",
        ),
    ] = 10

    grpc_insecure: Annotated[
        bool,
        Field(
            description="Allow insecure gRPC (plaintext) connections",
        ),
    ] = True

    resource_attributes: Annotated[
        dict[str, str],
        Field(
            description="Extra OpenTelemetry resource attributes",
        ),
    ] = Field(default_factory=dict)


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``POST_SEARCH_*`` environment variables.

    The search scope (fields, weights, prefix default, stopwords) is validated
    here at startup so that a bad value never reaches a search call.
    """

    model_config = SettingsConfigDict(
        env_prefix="POST_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Search scope
    search_fields: str = Field(default="title,body", description="Comma-separated searchable field names")
    field_weights: str = Field(
        default="",
        description="Comma-separated field:weight pairs (e.g., 'title:2,body:1'); unlisted fields weigh 1.0",
    )
    prefix_default: bool = Field(default=True, description="Treat query terms as prefixes unless overridden")
    negation: bool = Field(default=False, description="Allow '!word' to exclude documents containing word")
    stopwords: str = Field(
        default="none",
        description="'none', 'default' (built-in English list) or a comma-separated word list",
    )
    stemming: bool = Field(default=False, description="Apply light English suffix stripping")
    ignore_accents: bool = Field(default=False, description="Fold accented characters when matching")
    dictionary: Literal["simple", "english"] = Field(
        default="simple",
        description="Text search configuration: 'simple' (lowercase only) or 'english' (stemming and stopwords)",
    )

    # Results
    result_limit: int = Field(default=20, ge=1, description="Default maximum number of results")
    snippet_length: int = Field(default=300, ge=20, description="Maximum highlighted excerpt length")

    # Persistence
    store_path: Path | None = Field(default=None, description="JSON file that persists indexed documents")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")

    # Observability
    service_name: str = Field(default="post-search", description="Service name reported to OpenTelemetry")
    observability: ObservabilityCollectorConfig = Field(default_factory=ObservabilityCollectorConfig)

    @model_validator(mode="after")
    def _check_scope(self) -> "Settings":
        # Fail at startup rather than on the first search
        self.build_scope()
        return self

    def get_search_fields(self) -> list[str]:
        """Get list of searchable field names."""
        return [name.strip() for name in self.search_fields.split(",") if name.strip()]

    def get_field_weights(self) -> dict[str, float]:
        """Parse ``field:weight`` pairs.

        Raises:
            ValueError: a pair is malformed or its weight is not a number.
        """
        weights: dict[str, float] = {}
        if not self.field_weights:
            return weights
        for pair in self.field_weights.split(","):
            if not pair.strip():
                continue
            name, sep, raw_weight = pair.partition(":")
            if not sep or not name.strip():
                raise ValueError(f"Invalid field weight '{pair}'; expected field:weight")
            try:
                weights[name.strip()] = float(raw_weight)
            except ValueError as exc:
                raise ValueError(f"Invalid weight for field '{name.strip()}': {raw_weight!r}") from exc
        return weights

    def get_stopwords(self) -> frozenset[str]:
        """Resolve the configured stopword list."""
        value = self.stopwords.strip()
        if not value or value.lower() == "none":
            return frozenset()
        if value.lower() == "default":
            return english_stopwords()
        return frozenset(word.strip().lower() for word in value.split(",") if word.strip())

    def build_scope(self) -> SearchScope:
        """Build the validated search scope described by these settings."""
        names = self.get_search_fields()
        weights = self.get_field_weights()
        unknown = sorted(set(weights) - set(names))
        if unknown:
            raise ValueError(f"Weights given for fields outside the search scope: {unknown}")
        return SearchScope(
            name="settings",
            fields=tuple(TextField(name, weights.get(name, 1.0)) for name in names),
            prefix_default=self.prefix_default,
            negation=self.negation,
            stopwords=self.get_stopwords(),
            stemming=self.stemming,
            ignore_accents=self.ignore_accents,
            dictionary=self.dictionary,
        )

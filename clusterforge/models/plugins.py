"""Known Elasticsearch plugins and their version gates.

Version bounds are kept as strings so the table stays a literal; the
Feature Gate Matrix parses them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class Plugin(BaseModel):
    """A plugin that can be requested for a cluster."""

    model_config = ConfigDict(frozen=True)

    moniker: str
    # Shipped as a module (no install needed) as of this version
    shipped_by_default_as_of: str | None = None
    # Versions the plugin can be installed on
    supported_range: str = "*"

    @field_validator("moniker")
    @classmethod
    def _strip_moniker(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("plugin moniker must not be empty")
        return value


XPACK = Plugin(
    moniker="x-pack",
    shipped_by_default_as_of="6.3.0",
    supported_range=">=5.0.0 <6.3.0",
)

KNOWN_PLUGINS: dict[str, Plugin] = {
    p.moniker: p
    for p in [
        Plugin(moniker="analysis-icu"),
        Plugin(moniker="analysis-kuromoji"),
        Plugin(moniker="analysis-nori", supported_range=">=6.4.0"),
        Plugin(moniker="analysis-phonetic"),
        Plugin(moniker="analysis-smartcn"),
        Plugin(moniker="analysis-stempel"),
        Plugin(moniker="analysis-ukrainian", supported_range=">=5.0.0"),
        Plugin(moniker="delete-by-query", supported_range=">=2.0.0 <5.0.0"),
        Plugin(moniker="discovery-azure-classic", supported_range=">=5.0.0"),
        Plugin(moniker="discovery-ec2"),
        Plugin(moniker="discovery-gce"),
        Plugin(moniker="ingest-attachment", supported_range=">=5.0.0"),
        Plugin(
            moniker="ingest-geoip",
            shipped_by_default_as_of="6.6.0",
            supported_range=">=5.0.0",
        ),
        Plugin(
            moniker="ingest-user-agent",
            shipped_by_default_as_of="6.6.0",
            supported_range=">=5.0.0",
        ),
        Plugin(moniker="mapper-annotated-text", supported_range=">=6.5.0"),
        Plugin(moniker="mapper-attachments", supported_range="<6.0.0"),
        Plugin(moniker="mapper-murmur3"),
        Plugin(moniker="mapper-size"),
        Plugin(moniker="repository-azure"),
        Plugin(moniker="repository-gcs", supported_range=">=5.0.0"),
        Plugin(moniker="repository-hdfs"),
        Plugin(moniker="repository-s3"),
        Plugin(moniker="store-smb"),
        XPACK,
    ]
}


def get_plugin(moniker: str) -> Plugin:
    """Look up a known plugin; unknown monikers get no version gates."""
    known = KNOWN_PLUGINS.get(moniker.strip().lower())
    return known if known is not None else Plugin(moniker=moniker)

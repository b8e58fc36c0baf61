"""Registry of the record tables the search engine can load."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TableConfig:
    """Configuration for a single record table."""

    name: str                   # key in TABLES and ADAPTER_MAP
    table: str
    columns: list[str]
    order_by: str
    filters: dict = field(default_factory=dict)   # column → required value
    max_retries: int = 3
    retry_backoff_base: float = 2.0
    rate_limit_rpm: int = 60
    timeout_seconds: int = 15
    enabled: bool = True

    @property
    def select(self) -> str:
        return ",".join(self.columns)


TABLES: dict[str, TableConfig] = {
    "hospitals": TableConfig(
        name="hospitals",
        table="hospitals",
        columns=["id", "name", "type", "status", "address", "contact",
                 "latitude", "longitude", "services"],
        order_by="name",
    ),
    "blood_banks": TableConfig(
        name="blood_banks",
        table="blood_banks",
        columns=["id", "name", "blood_groups", "address", "contact",
                 "latitude", "longitude"],
        order_by="name",
    ),
    "camps": TableConfig(
        name="camps",
        table="camps",
        columns=["id", "name", "type", "date", "address", "contact",
                 "latitude", "longitude"],
        order_by="date",
    ),
    "donors": TableConfig(
        name="donors",
        table="donors",
        columns=["id", "name", "phone", "blood_group", "latitude", "longitude",
                 "last_donation_date", "sos_enabled"],
        order_by="name",
        filters={"sos_enabled": True},
    ),
}

RECORD_KINDS = list(TABLES)

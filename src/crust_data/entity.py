from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

TABLE_NAME = "crusts"
PARTITION_KEY = "crust"


@dataclass(frozen=True)
class CrustEntity:
    """
    One crust inventory row.

    Rows live under the fixed partition key "crust" and are keyed by the
    variant id (e.g. "thin9"). `etag` is the version tag assigned by the
    store on every write; it is None for rows that were never stored.
    """

    id: str
    name: str
    size: int
    price: float
    stock_count: int
    partition_key: str = PARTITION_KEY
    etag: str | None = None

    def to_table_entity(self) -> dict[str, Any]:
        """Wire shape used by the table store (PascalCase properties)."""
        return {
            "PartitionKey": self.partition_key,
            "RowKey": self.id,
            "Name": self.name,
            "Size": self.size,
            "Price": float(self.price),
            "StockCount": self.stock_count,
        }

    @classmethod
    def from_table_entity(
        cls, data: Mapping[str, Any], etag: str | None = None
    ) -> "CrustEntity":
        return cls(
            id=data["RowKey"],
            name=data["Name"],
            size=int(data["Size"]),
            price=float(data["Price"]),
            stock_count=int(data["StockCount"]),
            partition_key=data.get("PartitionKey", PARTITION_KEY),
            etag=etag,
        )


# Rows written exactly once, by the caller that created the table.
SEED_CRUSTS: tuple[CrustEntity, ...] = (
    CrustEntity("thin9", "Thin", 9, 5.0, 1000),
    CrustEntity("thin12", "Thin", 12, 7.5, 1000),
    CrustEntity("thin15", "Thin", 15, 10.0, 1000),
    CrustEntity("deep9", "Deep", 9, 6.0, 1000),
    CrustEntity("deep12", "Deep", 12, 9.0, 1000),
    CrustEntity("deep15", "Deep", 15, 12.0, 1000),
    CrustEntity("stuffed12", "Stuffed", 12, 10.0, 1000),
    CrustEntity("stuffed15", "Stuffed", 15, 14.0, 1000),
    CrustEntity("stuffed24", "Stuffed", 24, 28.0, 1000),
)

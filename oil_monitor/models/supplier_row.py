# oil_monitor/models/supplier_row.py

"""Per-supplier price quote extracted from the listing page."""

from dataclasses import asdict, dataclass


@dataclass
class SupplierRow:
    """One observed price quote for one supplier at scrape time."""

    name: str
    price_900l: float
    ppl: float
    postcodes: str = ""
    updated: str = ""

    def to_dict(self) -> dict[str, object]:
        """Plain-dict form used for the raw JSON blob."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "SupplierRow":
        """Rebuild a row from its stored JSON form."""
        return cls(
            name=str(data.get("name", "")),
            price_900l=float(str(data.get("price_900l", 0))),
            ppl=float(str(data.get("ppl", 0))),
            postcodes=str(data.get("postcodes", "")),
            updated=str(data.get("updated", "")),
        )

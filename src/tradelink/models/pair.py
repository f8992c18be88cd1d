"""Currency pair model and venue formatting rules."""

from pydantic import field_validator, model_validator

from tradelink.models.base import FrozenModel


class PairFormat(FrozenModel):
    """How a venue spells a pair: delimiter and letter case."""

    delimiter: str = ""
    uppercase: bool = True


class TradingPair(FrozenModel):
    """Ordered (base, quote) currency pair."""

    base: str
    quote: str

    @field_validator("base", "quote")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("Currency code must not be empty")
        return v

    @model_validator(mode="after")
    def distinct_currencies(self) -> "TradingPair":
        if self.base == self.quote:
            raise ValueError(f"Base and quote must differ, got {self.base}")
        return self

    def format(self, pair_format: PairFormat | None = None) -> str:
        """Render the pair in a venue's format."""
        fmt = pair_format or PairFormat()
        text = f"{self.base}{fmt.delimiter}{self.quote}"
        return text if fmt.uppercase else text.lower()

    @classmethod
    def parse(cls, text: str, delimiter: str = "-") -> "TradingPair":
        """Parse ``BTC-USDT`` style text (or ``BTC/USDT`` with delimiter="/")."""
        base, sep, quote = text.partition(delimiter)
        if not sep:
            raise ValueError(f"Pair '{text}' has no delimiter '{delimiter}'")
        return cls(base=base, quote=quote)

    def __str__(self) -> str:
        return self.format(PairFormat(delimiter="-"))

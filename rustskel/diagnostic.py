"""Data model for recoverable problems recorded while rendering."""

from dataclasses import dataclass

from rustskel.errors import RuskelError


@dataclass(frozen=True)
class Diagnostic:
    """A recovered error attached to a single item."""

    code: str  # UnresolvedReference / UnsupportedItemKind
    item_id: str | None
    stage: str
    message: str

    @classmethod
    def from_error(cls, error: RuskelError) -> "Diagnostic":
        """Build a diagnostic from a recoverable pipeline error."""
        return cls(
            code=type(error).__name__,
            item_id=error.item_id,
            stage=error.stage,
            message=error.message,
        )

    def to_dict(self) -> dict[str, str | None]:
        """Return the JSON-friendly form used in raw output."""
        return {
            "code": self.code,
            "item_id": self.item_id,
            "message": self.message,
            "stage": self.stage,
        }

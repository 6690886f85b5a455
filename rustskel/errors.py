"""Exception hierarchy for the skeleton pipeline."""


class RuskelError(Exception):
    """Base class for every error raised by a pipeline stage."""

    fatal = True

    def __init__(
        self, message: str, *, stage: str = "", item_id: str | None = None
    ) -> None:
        """Record the message together with the stage and item that raised it."""
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.item_id = item_id

    def __str__(self) -> str:
        """Prefix the message with the stage name when one is known."""
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class SchemaVersionMismatch(RuskelError):
    """The metadata document uses an unsupported format version."""

    def __init__(self, found: object, minimum: int, maximum: int) -> None:
        """Describe the version that was found and the accepted range."""
        super().__init__(
            f"unsupported format_version {found!r} (supported: {minimum}..{maximum})",
            stage="load",
        )
        self.found = found
        self.minimum = minimum
        self.maximum = maximum


class MalformedGraph(RuskelError):
    """The metadata document is structurally unusable."""


class CycleDetected(RuskelError):
    """A re-export chain revisits an alias it already passed through."""

    def __init__(self, chain: list[str]) -> None:
        """Keep the visited chain so the caller can report it."""
        super().__init__(
            "re-export cycle: " + " -> ".join(chain),
            stage="resolve",
            item_id=chain[0] if chain else None,
        )
        self.chain = chain


class UnresolvedReference(RuskelError):
    """A reference could not be resolved to an item or an external path."""

    fatal = False


class UnsupportedItemKind(RuskelError):
    """The metadata contains an item kind the renderer does not know."""

    fatal = False

    def __init__(self, kind: str, *, item_id: str | None = None) -> None:
        """Name the unknown kind tag."""
        super().__init__(f"unsupported item kind {kind!r}", stage="filter", item_id=item_id)
        self.kind = kind

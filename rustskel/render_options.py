"""Immutable options threaded through every pipeline stage."""

from dataclasses import dataclass, field
from typing import Any

from rustskel.feature_gate import FeatureSet

# Marker traits the compiler implements from a type's structure.
AUTO_TRAITS = ("Freeze", "RefUnwindSafe", "Send", "Sync", "Unpin", "UnwindSafe")

# Blanket impls of these std traits appear on every type and add nothing.
BLANKET_NOISE_TRAITS = (
    "Any",
    "AsMut",
    "AsRef",
    "Borrow",
    "BorrowMut",
    "CloneToUninit",
    "Debug",
    "Default",
    "Deref",
    "DerefMut",
    "Drop",
    "Eq",
    "From",
    "Hash",
    "Into",
    "IntoIterator",
    "Ord",
    "PartialEq",
    "PartialOrd",
    "ToOwned",
    "ToString",
    "TryFrom",
    "TryInto",
)

# Traits whose #[derive] output is recognized and folded into an attribute.
DERIVABLE_TRAITS = (
    "Clone",
    "Copy",
    "Debug",
    "Default",
    "Eq",
    "Hash",
    "Ord",
    "PartialEq",
    "PartialOrd",
    "StructuralPartialEq",
)

MAX_REEXPORT_DEPTH = 32


@dataclass(frozen=True)
class RenderPolicy:
    """Central policy tables consulted by the filter and the merger."""

    auto_traits: frozenset[str] = frozenset(AUTO_TRAITS)
    blanket_noise_traits: frozenset[str] = frozenset(BLANKET_NOISE_TRAITS)
    derivable_traits: frozenset[str] = frozenset(DERIVABLE_TRAITS)
    max_reexport_depth: int = MAX_REEXPORT_DEPTH


@dataclass(frozen=True)
class RenderOptions:
    """What to render and in which output mode."""

    include_private: bool = False
    include_auto_impls: bool = False
    include_blanket_impls: bool = False
    include_docs: bool = True
    features: FeatureSet = field(default_factory=FeatureSet)
    raw: bool = False
    policy: RenderPolicy = field(default_factory=RenderPolicy)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "RenderOptions":
        """Build options from a merged configuration dict."""
        render = config.get("render", {})
        policy = config.get("policy", {})
        return cls(
            include_private=bool(render.get("include_private", False)),
            include_auto_impls=bool(render.get("include_auto_impls", False)),
            include_blanket_impls=bool(render.get("include_blanket_impls", False)),
            include_docs=bool(render.get("include_docs", True)),
            features=FeatureSet.parse(render.get("features")),
            raw=bool(render.get("raw", False)),
            policy=RenderPolicy(
                auto_traits=frozenset(policy.get("auto_traits", AUTO_TRAITS)),
                blanket_noise_traits=frozenset(
                    policy.get("blanket_noise_traits", BLANKET_NOISE_TRAITS)
                ),
                derivable_traits=frozenset(
                    policy.get("derivable_traits", DERIVABLE_TRAITS)
                ),
                max_reexport_depth=int(
                    policy.get("max_reexport_depth", MAX_REEXPORT_DEPTH)
                ),
            ),
        )

    def to_config(self) -> dict[str, Any]:
        """Return the configuration dict equivalent of these options."""
        return {
            "policy": {
                "auto_traits": sorted(self.policy.auto_traits),
                "blanket_noise_traits": sorted(self.policy.blanket_noise_traits),
                "derivable_traits": sorted(self.policy.derivable_traits),
                "max_reexport_depth": self.policy.max_reexport_depth,
            },
            "render": {
                "features": self.features.to_config(),
                "include_auto_impls": self.include_auto_impls,
                "include_blanket_impls": self.include_blanket_impls,
                "include_docs": self.include_docs,
                "include_private": self.include_private,
                "raw": self.raw,
            },
        }

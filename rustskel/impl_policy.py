"""Predicates classifying impl blocks against the render policy."""

from rustskel.impl_block import ImplBlock
from rustskel.render_options import RenderPolicy


def is_auto_impl(block: ImplBlock, policy: RenderPolicy) -> bool:
    """Check if the impl is compiler-generated marker noise.

    Synthetic impls, impls of auto traits, and blanket impls of the standard
    conversion/borrowing traits all count.
    """
    if block.is_synthetic:
        return True
    if block.trait_name in policy.auto_traits:
        return True
    return block.is_blanket and block.trait_name in policy.blanket_noise_traits


def is_derived_impl(block: ImplBlock, policy: RenderPolicy) -> bool:
    """Check if the impl came from a recognized ``#[derive]``."""
    return block.is_derived and block.trait_name in policy.derivable_traits

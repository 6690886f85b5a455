"""Tests for configuration loading, merging and render options."""

from pathlib import Path

import yaml

from rustskel.compute_options_hash import compute_options_hash
from rustskel.deep_merge import deep_merge
from rustskel.feature_gate import FeatureSet
from rustskel.load_config import load_config
from rustskel.render_options import AUTO_TRAITS, RenderOptions


def test_deep_merge_nested() -> None:
    """Verify recursive merging of dictionaries."""
    base = {"render": {"raw": False, "include_docs": True}}
    update = {"render": {"raw": True}}
    assert deep_merge(base, update) == {"render": {"raw": True, "include_docs": True}}


def test_deep_merge_arrays_replace() -> None:
    """Verify that ordinary lists are replaced."""
    assert deep_merge({"features": ["a"]}, {"features": ["b"]}) == {"features": ["b"]}


def test_deep_merge_policy_lists_additive() -> None:
    """Verify that the policy trait lists are merged additively."""
    base = {"auto_traits": ["Send", "Sync"]}
    update = {"auto_traits": ["Sync", "Freeze"]}
    assert deep_merge(base, update)["auto_traits"] == ["Freeze", "Send", "Sync"]


def test_load_config_defaults() -> None:
    """Verify that default config is loaded when no path is provided."""
    config = load_config(None)
    assert config["render"]["include_private"] is False
    assert config["policy"]["max_reexport_depth"] == 32
    assert config["schema"]["min_format_version"] <= config["schema"]["max_format_version"]


def test_load_config_with_file(tmp_path: Path) -> None:
    """Verify that a user config overrides and extends the defaults."""
    config_file = tmp_path / "rustskel.yml"
    config_file.write_text(
        yaml.safe_dump(
            {
                "render": {"include_private": True, "features": "all"},
                "policy": {"auto_traits": ["MyMarker"]},
            }
        ),
        encoding="utf-8",
    )
    config = load_config(str(config_file))
    assert config["render"]["include_private"] is True
    assert "MyMarker" in config["policy"]["auto_traits"]
    assert "Send" in config["policy"]["auto_traits"]

    options = RenderOptions.from_config(config)
    assert options.include_private
    assert options.features == FeatureSet(all=True)
    assert "MyMarker" in options.policy.auto_traits


def test_options_defaults() -> None:
    """Verify the default render options."""
    options = RenderOptions()
    assert not options.include_private
    assert not options.include_auto_impls
    assert not options.include_blanket_impls
    assert options.include_docs
    assert options.policy.auto_traits == frozenset(AUTO_TRAITS)


def test_options_round_trip_through_config() -> None:
    """Verify options survive a trip through their config form."""
    options = RenderOptions(include_private=True, features=FeatureSet.parse("a,b"))
    assert RenderOptions.from_config(options.to_config()) == options


def test_options_hash_is_stable_and_ignores_output_mode() -> None:
    """Verify the fingerprint depends on the selection, not the output mode."""
    assert compute_options_hash(RenderOptions()) == compute_options_hash(RenderOptions())
    assert compute_options_hash(RenderOptions()) == compute_options_hash(RenderOptions(raw=True))
    assert compute_options_hash(RenderOptions()) != compute_options_hash(
        RenderOptions(include_private=True)
    )

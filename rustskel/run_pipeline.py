"""Orchestration of the load, filter, resolve, merge, render and assemble stages."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from rustskel.assemble_output import assemble_output
from rustskel.diagnostic import Diagnostic
from rustskel.errors import MalformedGraph, RuskelError
from rustskel.filter_graph import FilterSummary, filter_graph
from rustskel.load_item_graph import (
    MAX_FORMAT_VERSION,
    MIN_FORMAT_VERSION,
    load_item_graph,
    load_item_graph_file,
)
from rustskel.merge_impls import MergedGraph, merge_impls
from rustskel.models import ItemGraph
from rustskel.render_options import RenderOptions
from rustskel.render_skeleton import render_skeleton
from rustskel.resolve_references import resolve_references

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PipelineResult:
    """Final output together with what the caller needs to judge it."""

    output: str | dict[str, Any]
    merged: MergedGraph
    summary: FilterSummary
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """Return True when any item was rendered in a degraded form."""
        return bool(self.diagnostics)


def _stage(name: str, func: Callable[..., T], *args: Any) -> T:
    """Run one stage, tagging any error with the stage that raised it."""
    try:
        return func(*args)
    except RuskelError as exc:
        if not exc.stage:
            exc.stage = name
        raise
    except (KeyError, TypeError, AttributeError) as exc:
        logger.debug("Stage %s failed on unexpected metadata", name, exc_info=True)
        msg = f"unexpected metadata shape: {exc!r}"
        raise MalformedGraph(msg, stage=name) from exc


def run_pipeline(graph: ItemGraph, options: RenderOptions) -> PipelineResult:
    """Render an already loaded item graph under ``options``."""
    filtered = _stage("filter", filter_graph, graph, options)
    resolved = _stage("resolve", resolve_references, filtered, options)
    merged = _stage("merge", merge_impls, resolved, options)
    if options.raw:
        source = merged
    else:
        source = _stage("render", render_skeleton, merged, options)
    output = _stage("assemble", assemble_output, source, merged.summary, options)
    if merged.diagnostics:
        logger.warning("Completed with %d diagnostics", len(merged.diagnostics))
    return PipelineResult(
        output=output,
        merged=merged,
        summary=merged.summary,
        diagnostics=list(merged.diagnostics),
    )


def run_pipeline_document(
    doc: dict[str, Any],
    options: RenderOptions,
    *,
    min_version: int = MIN_FORMAT_VERSION,
    max_version: int = MAX_FORMAT_VERSION,
) -> PipelineResult:
    """Load a parsed metadata document and render it."""
    graph = _stage(
        "load",
        lambda: load_item_graph(doc, min_version=min_version, max_version=max_version),
    )
    return run_pipeline(graph, options)


def run_pipeline_file(
    path: Path,
    options: RenderOptions,
    *,
    min_version: int = MIN_FORMAT_VERSION,
    max_version: int = MAX_FORMAT_VERSION,
) -> PipelineResult:
    """Read a metadata file from disk and render it."""
    logger.info("Reading metadata from %s", path)
    graph = _stage(
        "load",
        lambda: load_item_graph_file(path, min_version=min_version, max_version=max_version),
    )
    return run_pipeline(graph, options)

"""Logic for computing a stable fingerprint of the render options."""

import hashlib
import json

from rustskel.render_options import RenderOptions


def compute_options_hash(options: RenderOptions) -> str:
    """Return a sha256 of the options in canonical JSON form.

    The output mode is left out so text and raw renders of the same
    selection share a fingerprint.
    """
    config = options.to_config()
    config["render"].pop("raw", None)
    canonical = json.dumps(config, sort_keys=True, ensure_ascii=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

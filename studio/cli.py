#!/usr/bin/env python3
"""
Generate and download studio artifacts from a notebook.

Usage:
  python -m studio.cli --url <notebook_url> --kind deck --audience investor
  python -m studio.cli --url <notebook_url> --kind deck --batch technical,customer,executive
  python -m studio.cli --url <notebook_url> --kind audio --format brief --language ja-JP
  python -m studio.cli --url <notebook_url> --kind video --custom-theme "hand drawn whiteboard"

Exit codes: 0 at least one artifact downloaded, 1 nothing downloaded,
2 fatal error (bad arguments, page unreachable, app never loaded).
"""

from __future__ import annotations

import argparse
import json
import os
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .config import StudioConfig, get_config
from .constants import ArtifactKind
from .errors import StudioError
from .models import GenerationRequest
from .runner import run_studio

# option that varies per entry of --batch, by kind
BATCH_FIELD = {
    ArtifactKind.DECK: "audience",
    ArtifactKind.AUDIO: "format",
    ArtifactKind.VIDEO: "theme",
    ArtifactKind.INFOGRAPHIC: "orientation",
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Generate and download notebook studio artifacts")
    ap.add_argument("--url", default=os.getenv("STUDIO_NOTEBOOK_URL"), help="Notebook URL (default: $STUDIO_NOTEBOOK_URL)")
    ap.add_argument("--mode", default="existing", choices=["existing", "new"], help="Use an existing notebook or pick one in the window")
    ap.add_argument("--kind", required=True, choices=[k.value for k in ArtifactKind], help="Artifact kind")
    ap.add_argument("--audience", default=None, help="Deck audience (technical|investor|customer|executive|beginner)")
    ap.add_argument("--format", default=None, help="Deck/audio/video format option")
    ap.add_argument("--length", default=None, help="Deck length (short|default|long)")
    ap.add_argument("--language", default=None, help="Audio language, BCP-47 code (default: en-US)")
    ap.add_argument("--theme", default=None, help="Video theme (retro-90s|futuristic|corporate|minimal)")
    ap.add_argument("--custom-theme", default=None, help="Free-text video theme (overrides --theme)")
    ap.add_argument("--orientation", default=None, help="Infographic orientation (square|portrait|landscape)")
    ap.add_argument("--detail", default=None, help="Infographic detail (concise|standard|detailed)")
    ap.add_argument("--prompt", default=None, help="Custom prompt written into the dialog")
    ap.add_argument("--batch", default=None, help="Comma separated values of the kind's main option; one generation each")
    ap.add_argument("--output-dir", default=None, help="Download directory (default: $STUDIO_OUTPUT_DIR or downloads)")
    ap.add_argument("--timeout", type=float, default=None, help="Generation timeout in seconds for this kind")
    ap.add_argument("--user-data-dir", default=None, help="Persistent Chromium profile (keeps the sign-in)")
    ap.add_argument("--headless", action="store_true", help="Run headless (default: headed)")
    ap.add_argument("--verbose", dest="verbose", action="store_true", default=None, help="Print progress lines")
    ap.add_argument("--no-verbose", dest="verbose", action="store_false", help="Only print result lines")
    ap.add_argument("--json", dest="as_json", action="store_true", help="Print the result as one JSON line")
    return ap.parse_args(argv)


def _options(args: argparse.Namespace, kind: ArtifactKind) -> Dict[str, Any]:
    fields = {
        ArtifactKind.DECK: ("audience", "format", "length"),
        ArtifactKind.AUDIO: ("format", "language"),
        ArtifactKind.VIDEO: ("format", "theme", "custom_theme"),
        ArtifactKind.INFOGRAPHIC: ("orientation", "detail"),
    }[kind]
    return {f: getattr(args, f) for f in fields if getattr(args, f) is not None}


def build_requests(args: argparse.Namespace) -> List[GenerationRequest]:
    kind = ArtifactKind(args.kind)
    base = _options(args, kind)
    if not args.batch:
        return [GenerationRequest(kind=kind, options=base, prompt_override=args.prompt)]
    values = [v.strip() for v in args.batch.split(",") if v.strip()]
    key = BATCH_FIELD[kind]
    return [
        GenerationRequest(kind=kind, options={**base, key: v}, prompt_override=args.prompt) for v in values
    ]


def build_config(args: argparse.Namespace) -> StudioConfig:
    cfg = get_config()
    if args.output_dir:
        cfg.output_dir = args.output_dir
    if args.timeout is not None:
        cfg.timeouts[ArtifactKind(args.kind)] = float(args.timeout)
    if args.verbose is not None:
        cfg.verbose = bool(args.verbose)
    return cfg.validate()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        requests = build_requests(args)
    except ValidationError as e:
        print(f"[ERROR] invalid options: {e}")
        return 2
    try:
        cfg = build_config(args)
        result = run_studio(
            args.url,
            requests,
            cfg,
            mode=args.mode,
            headless=args.headless,
            user_data_dir=args.user_data_dir,
        )
    except StudioError as e:
        print(f"[ERROR] {e}")
        return 2
    print(f"[METRIC] took(s)={result.took_s:.2f}")
    if args.as_json:
        print(json.dumps(result.to_dict(), ensure_ascii=False))
    for rec in result.artifacts:
        print(f"[RESULT] {rec.kind.value} {rec.final_name} -> {rec.path}")
    if not result.artifacts:
        print(f"[RESULT] ok=false message={result.error or 'no artifact'}")
        return 1
    print(f"[RESULT] ok=true downloaded={len(result.artifacts)}/{len(requests)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

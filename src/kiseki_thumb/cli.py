"""
kiseki-thumb Command Line
=========================

Usage:
    kiseki-thumb extract place.rbxl
    kiseki-thumb extract place.rbxl --save preview.png
    kiseki-thumb probe place.rbxl
    kiseki-thumb register --module C:\\kiseki\\thumb.dll --dry-run
    kiseki-thumb unregister

Exit codes:
    0  success
    1  extraction or registration failed
    2  usage error (argparse)
"""

import argparse
import logging
import sys
from typing import List, Optional

import cv2

from kiseki_thumb import __version__
from kiseki_thumb.config import Settings, load_config, setup_logging
from kiseki_thumb.container.scanner import locate_payload
from kiseki_thumb.decode.image_decoder import JpegDecoder
from kiseki_thumb.errors import ThumbnailError
from kiseki_thumb.pipeline import extract_thumbnail
from kiseki_thumb.registration import (
    WindowsRegistryStore,
    build_registration_entries,
    register,
    registration_keys,
    unregister,
)
from kiseki_thumb.stream.reader import read_all


logger = logging.getLogger(__name__)


def cmd_extract(args: argparse.Namespace, settings: Settings) -> int:
    with open(args.file, "rb") as f:
        thumb = extract_thumbnail(f, settings=settings)

    print(f"width:     {thumb.width}")
    print(f"height:    {thumb.height}")
    print(f"stride:    {thumb.stride}")
    print(f"bytes:     {len(thumb.pixels)}")
    print(f"has_alpha: {thumb.has_alpha}")

    if args.save:
        if not cv2.imwrite(args.save, thumb.to_array()):
            logger.error(f"Could not write {args.save}")
            return 1
        logger.info(f"Saved preview to {args.save}")
    return 0


def cmd_probe(args: argparse.Namespace, settings: Settings) -> int:
    with open(args.file, "rb") as f:
        raw = read_all(f, chunk_size=settings.reader.chunk_size)
    payload = locate_payload(raw)

    with JpegDecoder(payload) as decoder:
        info = decoder.frame_info

    print(f"payload offset: {payload.offset}")
    print(f"payload bytes:  {len(payload)}")
    print(f"width:          {info.width}")
    print(f"height:         {info.height}")
    print(f"components:     {info.components}")
    print(f"precision:      {info.precision}")
    print(f"progressive:    {info.progressive}")
    return 0


def cmd_register(args: argparse.Namespace, settings: Settings) -> int:
    entries = build_registration_entries(args.module, settings.registration)
    if args.dry_run:
        for entry in entries:
            print(entry.describe())
        return 0

    register(WindowsRegistryStore(), entries)
    return 0


def cmd_unregister(args: argparse.Namespace, settings: Settings) -> int:
    keys = registration_keys(settings.registration)
    if args.dry_run:
        for key in keys:
            print(key)
        return 0

    unregister(WindowsRegistryStore(), keys)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kiseki-thumb",
        description="Extract the preview image embedded in Roblox place files",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None, help="Path to kiseki.yaml")
    parser.add_argument("--log-level", default=None, help="Override logging.level")

    sub = parser.add_subparsers(dest="command", required=True)

    p_extract = sub.add_parser("extract", help="Decode and pack the embedded preview")
    p_extract.add_argument("file", help="Container file (.rbxl)")
    p_extract.add_argument("--save", default=None, help="Write the preview image to this path")
    p_extract.set_defaults(func=cmd_extract)

    p_probe = sub.add_parser("probe", help="Show payload and JPEG header without decoding")
    p_probe.add_argument("file", help="Container file (.rbxl)")
    p_probe.set_defaults(func=cmd_probe)

    p_register = sub.add_parser("register", help="Register the thumbnail handler")
    p_register.add_argument("--module", required=True, help="Path of the in-process server module")
    p_register.add_argument("--dry-run", action="store_true", help="Print entries instead of writing")
    p_register.set_defaults(func=cmd_register)

    p_unregister = sub.add_parser("unregister", help="Remove the thumbnail handler")
    p_unregister.add_argument("--dry-run", action="store_true", help="Print keys instead of deleting")
    p_unregister.set_defaults(func=cmd_unregister)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    settings = load_config(args.config)
    if args.log_level:
        settings.logging.level = args.log_level
    setup_logging(settings)

    try:
        return args.func(args, settings)
    except ThumbnailError as e:
        logger.error(f"{e.kind.value}: {e}")
        return 1
    except OSError as e:
        logger.error(f"{e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""
CLI entry point — argument parsing and dispatch to the tools.
"""

import argparse
import base64
import json
import os
import sys

from .cli_display import print_error, setup_logger
from .config import Config
from .diff_display import format_colored_diff
from .editing import (
    EditError,
    EditTool,
    EditToolOptions,
    make_command_writethrough,
    make_review_writethrough,
    read_edit_stats,
    writethrough_noop,
)
from .llm.gemini_image import GeminiImageTool, ImageToolError
from .plugins.git_url import parse_git_url
from . import snowflake

_EXTENSIONS = {"image/png": ".png", "image/jpeg": ".jpg", "image/gif": ".gif", "image/webp": ".webp"}


def _read_arg_text(value, path):
    if path:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    return value


def _cmd_edit(args, cfg):
    old_text = _read_arg_text(args.old, args.old_file)
    new_text = _read_arg_text(args.new, args.new_file)
    if old_text is None or new_text is None:
        print_error("edit needs --old/--old-file and --new/--new-file")
        return 2

    command = args.diagnostics_command or cfg.DIAGNOSTICS_COMMAND
    if command:
        writethrough = make_command_writethrough(command, timeout=cfg.DIAGNOSTICS_TIMEOUT)
    else:
        writethrough = writethrough_noop
    if args.review:
        writethrough = make_review_writethrough(writethrough, auto=args.auto)

    options = EditToolOptions.from_config(cfg, cwd=os.getcwd(), writethrough=writethrough)
    if args.no_fuzzy:
        options.fuzzy_match = False
    if args.threshold is not None:
        options.fuzzy_threshold = args.threshold

    tool = EditTool(options)
    try:
        result = tool.execute(args.path, old_text, new_text, replace_all=args.all)
    except EditError as e:
        print_error(str(e))
        return 1

    print(result.text)
    if result.details.diff:
        print()
        print(format_colored_diff(result.details.diff))
    return 0


def _cmd_image(args, cfg):
    params = {"prompt": args.prompt}
    if args.model:
        params["model"] = args.model
    if args.aspect_ratio:
        params["aspect_ratio"] = args.aspect_ratio
    if args.image_size:
        params["image_size"] = args.image_size
    if args.input:
        params["input_images"] = [{"path": p} for p in args.input]
    params["timeout_seconds"] = args.timeout or cfg.IMAGE_TIMEOUT_SECONDS

    tool = GeminiImageTool(
        default_model=cfg.IMAGE_MODEL,
        default_openrouter_model=cfg.IMAGE_OPENROUTER_MODEL,
    )
    try:
        result = tool.execute(params, cwd=os.getcwd())
    except ImageToolError as e:
        print_error(str(e))
        return 1

    print(result.text)
    os.makedirs(args.out, exist_ok=True)
    for i, image in enumerate(result.images, 1):
        ext = _EXTENSIONS.get(image.mime_type, ".img")
        target = os.path.join(args.out, f"image_{snowflake.next_id()}_{i}{ext}")
        with open(target, "wb") as f:
            f.write(base64.b64decode(image.data))
        print(f"  saved {target}")
    return 0


def _cmd_snowflake(args, cfg):
    for _ in range(args.count):
        print(snowflake.next_id())
    return 0


def _cmd_git_url(args, cfg):
    source = parse_git_url(args.spec)
    if source is None:
        print_error(f"not a git source: {args.spec}")
        return 1
    print(json.dumps({
        "type": source.type,
        "host": source.host,
        "path": source.path,
        "repo": source.repo,
        "ref": source.ref,
        "pinned": source.pinned,
    }, indent=2))
    return 0


def _cmd_stats(args, cfg):
    stats = read_edit_stats(last_n=args.last, project_root=cfg.METRICS_DIR or os.getcwd())
    print(json.dumps(stats, indent=2))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="agent-toolkit",
        description="Agent toolkit: text edits and supporting tools")
    parser.add_argument("--config", default=None,
                        help="Path to .agent_toolkit.yaml config file")
    parser.add_argument("--verbose", action="store_true",
                        help="Mirror log output to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    edit = sub.add_parser("edit", help="Replace text in a file")
    edit.add_argument("path", help="File to edit")
    edit.add_argument("--old", default=None, help="Text to replace")
    edit.add_argument("--old-file", default=None, help="Read the text to replace from a file")
    edit.add_argument("--new", default=None, help="Replacement text")
    edit.add_argument("--new-file", default=None, help="Read the replacement from a file")
    edit.add_argument("--all", action="store_true", help="Replace all occurrences")
    edit.add_argument("--no-fuzzy", action="store_true",
                      help="Only accept exact matches")
    edit.add_argument("--threshold", type=float, default=None,
                      help="Confidence needed for an approximate match")
    edit.add_argument("--diagnostics-command", default=None,
                      help="Command run after writing ({path} is substituted)")
    edit.add_argument("--review", action="store_true",
                      help="Show the diff and ask for approval before writing")
    edit.add_argument("--auto", action="store_true",
                      help="With --review, approve without prompting")
    edit.set_defaults(handler=_cmd_edit)

    image = sub.add_parser("image", help="Generate an image")
    image.add_argument("prompt")
    image.add_argument("--model", default=None)
    image.add_argument("--aspect-ratio", default=None)
    image.add_argument("--image-size", default=None)
    image.add_argument("--input", action="append", default=[],
                       help="Input image path (repeatable)")
    image.add_argument("--timeout", type=int, default=None)
    image.add_argument("--out", default=".", help="Directory for generated images")
    image.set_defaults(handler=_cmd_image)

    sf = sub.add_parser("snowflake", help="Print new snowflake ids")
    sf.add_argument("--count", type=int, default=1)
    sf.set_defaults(handler=_cmd_snowflake)

    git = sub.add_parser("git-url", help="Parse a plugin git source")
    git.add_argument("spec")
    git.set_defaults(handler=_cmd_git_url)

    stats = sub.add_parser("stats", help="Show edit metrics")
    stats.add_argument("--last", type=int, default=50)
    stats.set_defaults(handler=_cmd_stats)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    cfg = Config.load(args.config)
    setup_logger(cfg.LOG_DIR, verbose=args.verbose)
    return args.handler(args, cfg)


if __name__ == "__main__":
    sys.exit(main())

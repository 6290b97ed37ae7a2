"""Command-line interface for checking declarations and resolving properties."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from .descriptor import PropertyDescriptor, parse_description, parse_with_value
from .errors import DynpropsError
from .hierarchy import HOLE, build_hierarchy
from .merge import merge
from .resources import load_grammar
from .styles import StyleSheet


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    retryable: bool = True


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="dynprops",
        description="Check property declarations and resolve them into attribute trees.",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")

    subparsers = parser.add_subparsers(dest="command")

    check_parser = subparsers.add_parser("check", help="Parse declaration keys")
    check_parser.add_argument("declarations", nargs="+", metavar="DECL")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve declarations to JSON")
    resolve_parser.add_argument("input", nargs="?", help="Input .json file")
    resolve_parser.add_argument("--text", help="Raw JSON source")
    resolve_parser.add_argument("--stdout", action="store_true", help="Write JSON to stdout")
    resolve_parser.add_argument("-o", "--output", help="Output .json path")
    resolve_parser.add_argument(
        "--renderers",
        default="common",
        help="Comma separated compatible renderers (default: common)",
    )
    resolve_parser.add_argument("--styles", help="Style stack, e.g. 'base, heading'")
    resolve_parser.add_argument("--page", action="store_true", help="Emit the page properties")
    resolve_parser.add_argument(
        "--strict", action="store_true", help="Fail on hierarchy shape conflicts"
    )

    subparsers.add_parser("grammar", help="Print the declaration grammar reference")

    return parser


def _read_input(path: Optional[str], text: Optional[str]) -> tuple[str, str]:
    if path and text is not None:
        raise CliError(
            "E_ARGS",
            "--text cannot be combined with file input",
            hint="Use either FILE or --text.",
            exit_code=2,
        )

    if text is not None:
        return text, "<text>"

    if path:
        input_path = Path(path)
        if not input_path.exists():
            raise CliError(
                "E_IO_READ",
                f"input file not found: {input_path}",
                exit_code=2,
                file=str(input_path),
            )
        try:
            return input_path.read_text(encoding="utf-8"), str(input_path)
        except OSError as exc:
            raise CliError(
                "E_IO_READ",
                f"failed to read input file: {input_path}",
                hint=str(exc),
                exit_code=2,
                file=str(input_path),
            )

    if sys.stdin.isatty():
        raise CliError(
            "E_ARGS",
            "no input provided",
            hint="Use resolve with FILE, --text, or pipe stdin.",
            exit_code=2,
        )

    data = sys.stdin.read()
    if not data.strip():
        raise CliError(
            "E_ARGS",
            "stdin was empty",
            hint="Pipe a JSON object of declarations into stdin.",
            exit_code=2,
        )
    return data, "<stdin>"


def _load_json(source: str, source_name: str) -> Any:
    try:
        return json.loads(source)
    except json.JSONDecodeError as exc:
        raise CliError(
            "E_PARSE_JSON",
            f"failed to parse JSON: {exc.msg}",
            hint="Input must be a JSON object, a list of [declaration, value] pairs, "
            "or a style document.",
            exit_code=2,
            file=None if source_name.startswith("<") else source_name,
            line=exc.lineno,
            column=exc.colno,
        )


def _declarations_from(payload: Any, what: str) -> list[PropertyDescriptor]:
    if isinstance(payload, dict):
        items = list(payload.items())
    elif isinstance(payload, list):
        items = []
        for entry in payload:
            if not isinstance(entry, list) or len(entry) != 2:
                raise CliError(
                    "E_INPUT",
                    f"{what}: expected [declaration, value] pairs, got {entry!r}",
                    exit_code=2,
                )
            items.append((entry[0], entry[1]))
    else:
        raise CliError(
            "E_INPUT",
            f"{what}: expected an object or a list of pairs",
            exit_code=2,
        )
    return [parse_with_value(key, value) for key, value in items]


def _is_style_document(payload: Any) -> bool:
    return isinstance(payload, dict) and any(key in payload for key in ("styles", "element", "page"))


def _resolve_payload(payload: Any, args: argparse.Namespace) -> dict:
    renderers = [name.strip() for name in args.renderers.split(",") if name.strip()]
    if not renderers:
        raise CliError(
            "E_ARGS",
            "--renderers must name at least one renderer",
            hint="Use e.g. --renderers common,latex.",
            exit_code=2,
        )

    if not _is_style_document(payload):
        if args.styles or args.page:
            raise CliError(
                "E_ARGS",
                "--styles and --page need a style document",
                hint='Wrap declarations as {"styles": {...}, "element": {...}}.',
                exit_code=2,
            )
        resolved = merge(_declarations_from(payload, "input"), renderers)
        return build_hierarchy(resolved, strict=args.strict)

    sheet = StyleSheet(renderers)
    styles = payload.get("styles") or {}
    if not isinstance(styles, dict):
        raise CliError("E_INPUT", "styles: expected an object of named styles", exit_code=2)
    for name, declarations in styles.items():
        sheet.add_style_properties(_declarations_from(declarations, f"styles.{name}"), name)
    if "page" in payload:
        sheet.add_page_properties(_declarations_from(payload["page"], "page"))
    if args.page:
        return sheet.page(strict=args.strict)
    overrides = _declarations_from(payload.get("element") or {}, "element")
    return sheet.element(args.styles, overrides, strict=args.strict)


def _to_json(tree: dict) -> str:
    def _default(value: Any) -> Any:
        if value is HOLE:
            return None
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

    return json.dumps(tree, indent=2, default=_default)


def _write_text(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise CliError(
            "E_IO_WRITE",
            f"failed to write output file: {path}",
            hint=str(exc),
            exit_code=4,
            file=str(path),
        )


def _error_from_exception(exc: Exception) -> CliError:
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, DynpropsError):
        return CliError(
            exc.code,
            str(exc),
            hint="Check declaration keys with `dynprops check` and `dynprops grammar`.",
            exit_code=3,
            retryable=True,
        )
    return CliError(
        "E_INTERNAL",
        str(exc) or exc.__class__.__name__,
        hint="Re-run with --debug to see traceback.",
        exit_code=1,
        retryable=False,
    )


def _emit_error(err: CliError, *, error_format: str) -> None:
    if error_format == "json":
        payload = {
            "ok": False,
            "code": err.code,
            "message": err.message,
            "file": err.file,
            "line": err.line,
            "column": err.column,
            "hint": err.hint,
            "retryable": err.retryable,
        }
        sys.stderr.write(json.dumps(payload) + "\n")
        return

    sys.stderr.write(f"error[{err.code}]: {err.message}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def _handle_check(args: argparse.Namespace) -> int:
    for text in args.declarations:
        descriptor = parse_description(text)
        tags = " ".join(descriptor.tags) or "-"
        print(
            f"{descriptor.to_key()}\trenderer={descriptor.renderer} "
            f"group={descriptor.group or '-'} type={descriptor.data_type.value} "
            f"name={descriptor.name_path} tags={tags}"
        )
    return 0


def _handle_resolve(args: argparse.Namespace) -> int:
    if args.stdout and args.output:
        raise CliError(
            "E_ARGS",
            "--stdout and --output are mutually exclusive",
            hint="Choose either --stdout or --output.",
            exit_code=2,
        )

    source, source_name = _read_input(args.input, args.text)
    payload = _load_json(source, source_name)
    text = _to_json(_resolve_payload(payload, args))

    if args.stdout or not args.output:
        sys.stdout.write(text + "\n")
        return 0

    output_path = Path(args.output)
    _write_text(output_path, text + "\n")
    print(f"Wrote {output_path}")
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    if not raw_argv:
        err = CliError(
            "E_ARGS",
            "missing subcommand",
            hint="Use one of: check, resolve, grammar.",
            exit_code=2,
        )
        _emit_error(err, error_format="text")
        return err.exit_code

    debug_enabled = "--debug" in raw_argv or os.getenv("DYNPROPS_DEBUG") == "1"
    if debug_enabled:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
    error_format = "text"
    if "--error-format" in raw_argv:
        idx = raw_argv.index("--error-format")
        if idx + 1 < len(raw_argv):
            error_format = raw_argv[idx + 1]

    try:
        args = parser.parse_args(raw_argv)
        error_format = args.error_format

        if args.command == "check":
            return _handle_check(args)
        if args.command == "resolve":
            return _handle_resolve(args)
        if args.command == "grammar":
            print(load_grammar())
            return 0

        raise CliError(
            "E_ARGS",
            "missing subcommand",
            hint="Use one of: check, resolve, grammar.",
            exit_code=2,
        )
    except UsageError as exc:
        err = CliError(
            "E_ARGS",
            str(exc),
            hint="Use subcommands: check, resolve, grammar.",
            exit_code=2,
        )
        _emit_error(err, error_format=error_format)
        return err.exit_code
    except Exception as exc:  # pragma: no cover - exercised in acceptance tests
        err = _error_from_exception(exc)
        _emit_error(err, error_format=error_format)
        if debug_enabled:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code


if __name__ == "__main__":
    raise SystemExit(main())

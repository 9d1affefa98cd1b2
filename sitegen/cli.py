"""CLI entrypoints for sitegen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from .errors import SitegenError
from .logging import configure_logging, get_logger
from .models import FileRecord
from .orchestrator import Orchestrator
from .pipeline import fix_image_urls, image_fix_stats, normalize_and_reconcile

_LOGGER = get_logger("cli")


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitegen",
        description="Generate, repair, preview and deploy static websites with hosted LLMs.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Create a project and generate its website from a prompt.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    generate_parser.add_argument("prompt", help="Description of the website to build.")
    generate_parser.add_argument(
        "--provider",
        default=None,
        help="LLM provider to use (cerebras, openai, anthropic, gemini).",
    )
    generate_parser.add_argument(
        "--title",
        default=None,
        help="Project title (defaults to the start of the prompt).",
    )
    generate_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Also write the generated files into this directory.",
    )

    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Repair and normalize every file in a directory in place.",
    )
    _add_verbose_option(reconcile_parser, suppress_default=True)
    reconcile_parser.add_argument("directory", type=Path, help="Directory of generated files.")

    fix_parser = subparsers.add_parser(
        "fix-images",
        help="Replace local image references in an HTML file with remote placeholders.",
    )
    _add_verbose_option(fix_parser, suppress_default=True)
    fix_parser.add_argument("file", type=Path, help="HTML file to fix.")
    fix_parser.add_argument(
        "--in-place",
        action="store_true",
        help="Rewrite the file instead of printing the result.",
    )

    export_parser = subparsers.add_parser(
        "export",
        help="Write a deployment-ready zip archive for a project.",
    )
    _add_verbose_option(export_parser, suppress_default=True)
    export_parser.add_argument("project_id", help="Identifier of the project to export.")
    export_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Destination zip path (defaults to <title>.zip in the current directory).",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for sitegen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    try:
        if args.command == "generate":
            _run_generate(args)
        elif args.command == "reconcile":
            _run_reconcile(args.directory)
        elif args.command == "fix-images":
            _run_fix_images(args.file, in_place=bool(args.in_place))
        elif args.command == "export":
            _run_export(args.project_id, args.output)
        elif args.command == "serve":  # pragma: no cover - integration path
            from .service.app import run_service

            run_service(host=args.host, port=args.port)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except (SitegenError, OSError) as exc:
        parser.exit(1, f"sitegen {args.command} failed: {exc}\nRun with --verbose for more details.\n")


def _run_generate(args: argparse.Namespace) -> None:
    orchestrator = Orchestrator()
    title = args.title or _title_from_prompt(args.prompt)
    project = orchestrator.create_project(title, args.prompt)
    result = orchestrator.generate(project.id, args.prompt, args.provider)
    print(f"Project {project.id}: {result.description}")
    for record in result.files:
        print(f"  {record.path} ({record.size} bytes)")
    if args.out is not None:
        written = _write_files(args.out, result.files)
        print(f"Wrote {written} file(s) to {_relativize(args.out)}")


def _run_reconcile(directory: Path) -> None:
    if not directory.is_dir():
        raise FileNotFoundError(f"{directory} is not a directory")
    records: List[FileRecord] = []
    for path in sorted(directory.rglob("*")):
        if not path.is_file():
            continue
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            _LOGGER.debug("Skipping binary file %s", path)
            continue
        records.append(FileRecord(path=path.relative_to(directory).as_posix(), content=content))

    reconciled = normalize_and_reconcile(records)
    originals = {record.path: record.content for record in records}
    changed = [record for record in reconciled if originals.get(record.path) != record.content]
    _write_files(directory, changed)
    print(f"Reconciled {len(reconciled)} file(s); rewrote {len(changed)}")
    for record in changed:
        print(f"  {record.path}")


def _run_fix_images(path: Path, *, in_place: bool) -> None:
    original = path.read_text(encoding="utf-8")
    fixed = fix_image_urls(original)
    stats = image_fix_stats(original, fixed)
    if in_place:
        if fixed != original:
            path.write_text(fixed, encoding="utf-8")
        print(f"Fixed {stats.fixed} of {stats.total_broken} local image reference(s) in {_relativize(path)}")
    else:
        sys.stdout.write(fixed)


def _run_export(project_id: str, output: Path | None) -> None:
    orchestrator = Orchestrator()
    filename, payload = orchestrator.export_zip(project_id)
    target = output or Path.cwd() / filename
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(payload)
    print(f"Exported project {project_id} to {_relativize(target)}")


def _write_files(root: Path, records: List[FileRecord]) -> int:
    root = root.resolve()
    for record in records:
        destination = (root / record.path).resolve()
        if root not in destination.parents:
            raise SitegenError(f"Refusing to write outside {root}: {record.path}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(record.content, encoding="utf-8")
    return len(records)


def _title_from_prompt(prompt: str) -> str:
    words = prompt.split()
    title = " ".join(words[:6])
    return title[:60] or "Untitled Project"


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])

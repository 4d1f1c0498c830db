"""Command line interface for the Tarjama catalog translator."""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
import sys
from typing import Iterable, Optional

from .commerce import ShopifyAdminClient, seo_resource_types, supported_resource_types
from .configuration import TarjamaConfig, load_settings
from .errors import TarjamaError
from .logging_setup import configure_logging
from .providers import build_oracle
from .segmenter import extract_segments, structural_ranges
from .structures import SyncOutcome, SyncStatus, UpdateOutcome
from .translator import CatalogTranslator

logger = logging.getLogger(__name__)

EXIT_CODES = {
    SyncStatus.SAVED: 0,
    SyncStatus.FAILED: 1,
    SyncStatus.REJECTED: 2,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tarjama",
        description=(
            "Translate Shopify catalog content while preserving HTML structure."
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    translate = subparsers.add_parser(
        "translate",
        help="Translate a resource by handle and register the translations.",
    )
    translate.add_argument("handle", help="Handle of the product or collection.")
    _add_oracle_arguments(translate)
    translate.add_argument(
        "-r",
        "--resource-type",
        choices=supported_resource_types(),
        default="product",
        help="Kind of resource the handle refers to (default: product).",
    )
    translate.add_argument(
        "--digest-policy",
        choices=["off", "optional", "required"],
        help="Translatable content digest policy (default from TARJAMA_DIGEST_POLICY).",
    )
    translate.add_argument(
        "--json",
        action="store_true",
        help="Print the full outcome as JSON.",
    )

    handles = subparsers.add_parser("handles", help="List resource handles.")
    handles.add_argument(
        "-r",
        "--resource-type",
        choices=supported_resource_types(),
        default="product",
    )
    handles.add_argument(
        "-n",
        "--first",
        type=int,
        default=100,
        help="Number of resources to list (default: 100, max: 250).",
    )

    blogs = subparsers.add_parser("blogs", help="List blogs.")
    blogs.add_argument("-n", "--first", type=int, default=10)

    articles = subparsers.add_parser("articles", help="List blog articles with their SEO fields.")
    articles.add_argument(
        "--blogs",
        type=int,
        default=10,
        help="Number of blogs to scan (default: 10).",
    )
    articles.add_argument(
        "-n",
        "--first",
        type=int,
        default=50,
        help="Number of articles per blog (default: 50).",
    )

    update_seo = subparsers.add_parser(
        "update-seo",
        help="Overwrite the SEO title and description of a resource in place.",
    )
    update_seo.add_argument("resource_id", help="Admin API id, e.g. gid://shopify/Product/1.")
    update_seo.add_argument(
        "-r",
        "--resource-type",
        choices=seo_resource_types(),
        default="product",
    )
    update_seo.add_argument("--seo-title", help="New SEO title.")
    update_seo.add_argument("--seo-description", help="New SEO description.")
    update_seo.add_argument(
        "--description-file",
        help="HTML file with a new product body ('-' for stdin).",
    )

    segments = subparsers.add_parser(
        "segments",
        help="Show the text segments of a local HTML file.",
    )
    segments.add_argument("input_file", help="HTML file to inspect ('-' for stdin).")

    preview = subparsers.add_parser(
        "preview",
        help="Translate a local HTML file without contacting Shopify.",
    )
    preview.add_argument("input_file", help="HTML file to translate ('-' for stdin).")
    _add_oracle_arguments(preview)
    return parser


def _add_oracle_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-l",
        "--locale",
        help="Target locale (default from TARJAMA_TARGET_LOCALE, normally 'ar').",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Translation provider identifier: chat, openai or echo (default: chat).",
    )
    parser.add_argument(
        "-m",
        "--model",
        help="Provider-specific model or deployment identifier.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )


def _read_markup(input_file: str) -> str:
    if input_file == "-":
        return sys.stdin.read()
    return pathlib.Path(input_file).expanduser().read_text(encoding="utf-8")


def execute_sync(
    *,
    settings: TarjamaConfig,
    handle: str,
    locale: str | None,
    resource_type: str,
    provider: str | None,
    model: str | None,
    digest_policy: str | None,
    provider_debug: bool,
    client: ShopifyAdminClient | None = None,
) -> tuple[int, SyncOutcome | None, str | None]:
    """Run one sync and return the exit code, outcome, and message."""

    try:
        oracle = build_oracle(provider, settings, model=model, debug=provider_debug)
        if client is None:
            client = ShopifyAdminClient.from_settings(settings)
    except TarjamaError as exc:
        return 1, None, str(exc)

    translator = CatalogTranslator(
        settings=settings,
        client=client,
        oracle=oracle,
        digest_policy=digest_policy,  # type: ignore[arg-type]
    )
    outcome = translator.sync(handle, locale, resource_type=resource_type)
    return EXIT_CODES[outcome.status], outcome, outcome.error


def print_summary(outcome: SyncOutcome) -> None:
    """Output a friendly report once processing completes."""

    print(f"\nTranslation {outcome.status.value}.")
    print(f"  Handle:          {outcome.handle} ({outcome.resource_type})")
    if outcome.resource_id:
        print(f"  Resource id:     {outcome.resource_id}")
    print(f"  Locale:          {outcome.locale}")
    print(f"  Segments:        {outcome.segment_count}")
    if outcome.translated.get("title"):
        print(f"  Title:           {outcome.translated['title']}")
    if outcome.status is not SyncStatus.FAILED:
        print(f"  Registered:      {len(outcome.registered)} fields")
    print(f"  Elapsed time:    {outcome.elapsed_seconds:.2f} seconds")
    if outcome.error_kind:
        print(f"  Error:           {outcome.error_kind} (HTTP {outcome.http_status})")
    for user_error in outcome.user_errors:
        field = ".".join(str(part) for part in user_error.get("field") or [])
        print(f"    - {field or 'translations'}: {user_error.get('message')}")


def _run_translate(args: argparse.Namespace, settings: TarjamaConfig) -> int:
    exit_code, outcome, message = execute_sync(
        settings=settings,
        handle=args.handle,
        locale=args.locale,
        resource_type=args.resource_type,
        provider=args.provider,
        model=args.model,
        digest_policy=args.digest_policy,
        provider_debug=args.debug_provider or settings.TARJAMA_PROVIDER_DEBUG,
    )
    if outcome is None:
        print(message)
        return exit_code
    if args.json:
        print(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))
        return exit_code
    if message:
        print(message)
    print_summary(outcome)
    return exit_code


def _run_handles(args: argparse.Namespace, settings: TarjamaConfig) -> int:
    try:
        client = ShopifyAdminClient.from_settings(settings)
        nodes = client.list_resources(args.resource_type, first=args.first)
    except TarjamaError as exc:
        print(exc)
        return 1
    for node in nodes:
        print(f"{node.get('handle')}\t{node.get('title')}\t{node.get('id')}")
    print(f"\n{len(nodes)} {args.resource_type}(s)")
    return 0


def _run_blogs(args: argparse.Namespace, settings: TarjamaConfig) -> int:
    try:
        client = ShopifyAdminClient.from_settings(settings)
        nodes = client.list_blogs(first=args.first)
    except TarjamaError as exc:
        print(exc)
        return 1
    for node in nodes:
        print(f"{node.get('handle')}\t{node.get('title')}\t{node.get('id')}")
    print(f"\n{len(nodes)} blog(s)")
    return 0


def _run_articles(args: argparse.Namespace, settings: TarjamaConfig) -> int:
    try:
        client = ShopifyAdminClient.from_settings(settings)
        entries = client.list_articles(blogs=args.blogs, articles=args.first)
    except TarjamaError as exc:
        print(exc)
        return 1
    for entry in entries:
        print(
            f"{entry['handle']}\t{entry['title']}\t[{entry['blogTitle']}]\t{entry['id']}"
        )
    print(f"\n{len(entries)} article(s)")
    return 0


def execute_seo_update(
    *,
    client: ShopifyAdminClient,
    resource_type: str,
    resource_id: str,
    seo_title: str | None,
    seo_description: str | None,
    description_html: str | None = None,
) -> tuple[int, UpdateOutcome | None, str | None]:
    """Apply one SEO update and return the exit code, outcome, and message."""

    try:
        outcome = client.update_seo(
            resource_type,
            resource_id,
            seo_title=seo_title,
            seo_description=seo_description,
            description_html=description_html,
        )
    except TarjamaError as exc:
        return 1, None, str(exc)
    if not outcome.accepted:
        return 2, outcome, f"Shopify rejected the {resource_type} update."
    return 0, outcome, None


def _run_update_seo(args: argparse.Namespace, settings: TarjamaConfig) -> int:
    description_html = None
    if args.description_file:
        try:
            description_html = _read_markup(args.description_file)
        except OSError as exc:
            print(f"Could not read {args.description_file}: {exc}")
            return 1
    try:
        client = ShopifyAdminClient.from_settings(settings)
    except TarjamaError as exc:
        print(exc)
        return 1

    exit_code, outcome, message = execute_seo_update(
        client=client,
        resource_type=args.resource_type,
        resource_id=args.resource_id,
        seo_title=args.seo_title,
        seo_description=args.seo_description,
        description_html=description_html,
    )
    if message:
        print(message)
    if outcome is not None:
        for user_error in outcome.user_errors:
            field = ".".join(str(part) for part in user_error.get("field") or [])
            print(f"  - {field or args.resource_type}: {user_error.get('message')}")
        if outcome.resource:
            seo = outcome.resource.get("seo") or {}
            print(f"Updated {args.resource_type} {outcome.resource.get('id')}")
            print(f"  SEO title:       {seo.get('title')}")
            print(f"  SEO description: {seo.get('description')}")
    return exit_code


def _run_segments(args: argparse.Namespace) -> int:
    try:
        markup = _read_markup(args.input_file)
    except OSError as exc:
        print(f"Could not read {args.input_file}: {exc}")
        return 1
    segments = extract_segments(markup)
    for index, segment in enumerate(segments):
        print(f"{index:>4} [{segment.start}:{segment.end}] {json.dumps(segment.text, ensure_ascii=False)}")
    structure = structural_ranges(markup, segments)
    structural_chars = sum(end - start for start, end in structure)
    print(
        f"\n{len(segments)} segments, {structural_chars} structural characters "
        f"in {len(structure)} ranges."
    )
    return 0


def _run_preview(args: argparse.Namespace, settings: TarjamaConfig) -> int:
    try:
        markup = _read_markup(args.input_file)
    except OSError as exc:
        print(f"Could not read {args.input_file}: {exc}")
        return 1
    try:
        oracle = build_oracle(
            args.provider,
            settings,
            model=args.model,
            debug=args.debug_provider or settings.TARJAMA_PROVIDER_DEBUG,
        )
        translator = CatalogTranslator(settings=settings, client=None, oracle=oracle)
        translated = translator.translate_markup(
            markup,
            locale=args.locale or settings.TARJAMA_TARGET_LOCALE,
        )
    except TarjamaError as exc:
        print(exc)
        return 1
    print(translated.markup)
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(
        verbose=args.verbose,
        debug=bool(getattr(args, "debug_provider", False)),
    )

    if args.command == "segments":
        return _run_segments(args)

    try:
        settings = load_settings()
    except TarjamaError as exc:
        print(exc)
        return 1

    if settings.TARJAMA_PROVIDER_DEBUG:
        configure_logging(verbose=args.verbose, debug=True)

    commands = {
        "translate": _run_translate,
        "handles": _run_handles,
        "blogs": _run_blogs,
        "articles": _run_articles,
        "update-seo": _run_update_seo,
        "preview": _run_preview,
    }
    try:
        return commands[args.command](args, settings)
    except KeyboardInterrupt:
        print("Interrupted by user.")
        return 2
    except Exception as exc:
        logger.info("Unhandled error", exc_info=True)
        print(
            f"{exc}\n"
            "An unexpected error occurred. Please rerun with --verbose for more details."
        )
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

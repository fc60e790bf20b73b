"""Command-line interface for SnapSell."""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.prompt import Prompt

from snapsell.core.api.hosting.imgur import ImageHostError
from snapsell.core.config.loader import load_app_config, load_job_config
from snapsell.core.config.models import AppConfig
from snapsell.core.studio.credentials import CredentialStore, KeyStatus, login
from snapsell.core.studio.errors import ValidationError, describe_failure
from snapsell.core.studio.export import format_listing_text, listing_export_filename
from snapsell.core.studio.models import (
    AngleResult,
    AngleStatus,
    BackgroundStyle,
    Condition,
    ListingPack,
    Platform,
    StudioConfig,
)
from snapsell.core.studio.session import image_host_client, open_studio, text_service_client
from snapsell.core.utils.logging import configure_logging

console = Console()
logger = logging.getLogger(__name__)

_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(text: str, default: str = "item") -> str:
    """Lowercase, dash-separated file-name stem ("3/4 Angle" -> "3-4-angle")."""
    return _SLUG.sub("-", text.lower()).strip("-") or default


def resolve_api_key(app_config: AppConfig, store: CredentialStore) -> str | None:
    """Key from config or environment first, then the stored credential."""
    return app_config.service.api_key or store.load()


def build_studio_config(args: argparse.Namespace) -> StudioConfig:
    """Job config from --job (if given) with command-line flags layered on top."""
    config = load_job_config(args.job) if args.job else StudioConfig()

    overrides: dict[str, object] = {}
    for name in ("item_name", "brand", "category_hint", "seed"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    if args.condition:
        overrides["condition"] = Condition(args.condition)
    if args.platform:
        overrides["platform"] = Platform(args.platform)
    if args.background:
        overrides["background_style"] = BackgroundStyle(args.background)
    if args.size:
        overrides["image_size"] = args.size
    if args.unsafe:
        overrides["safe_mode"] = False

    config = StudioConfig.model_validate({**config.model_dump(), **overrides})
    for url in args.ref or []:
        config.add_reference_url(url)
    return config


def format_angle(result: AngleResult) -> str:
    """One console line for an angle result."""
    if result.status is AngleStatus.SUCCESS:
        line = f"[green]✅ {result.label}[/green] ({result.model_used})"
        if result.badge:
            line += f" [yellow]{result.badge}[/yellow]"
        if result.warning:
            line += f"\n   [yellow]{result.warning}[/yellow]"
        return line
    if result.status is AngleStatus.ERROR:
        return f"[red]❌ {result.label}[/red]: {result.error_message}"
    return f"[dim]… {result.label}[/dim]"


def save_pack(pack: ListingPack, output_dir: Path, item_name: str) -> list[Path]:
    """Write renders, listing.json and the text export.

    Returns:
        Paths written
    """
    stem = slugify(item_name)
    artifact_dir = output_dir / stem
    artifact_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for angle in pack.angles:
        if angle.image is not None and not angle.image.released:
            written.append(angle.image.save_to(artifact_dir / f"{stem}-{slugify(angle.label)}"))

    listing_json = artifact_dir / "listing.json"
    listing_json.write_text(pack.listing.model_dump_json(indent=2), encoding="utf-8")
    written.append(listing_json)

    listing_txt = artifact_dir / listing_export_filename(pack.listing)
    listing_txt.write_text(format_listing_text(pack.listing), encoding="utf-8")
    written.append(listing_txt)
    return written


async def upload_photos(app_config: AppConfig, paths: Sequence[Path]) -> list[str]:
    """Upload local photos to the image host; returns their https links in order."""
    host = image_host_client(app_config)
    links: list[str] = []
    try:
        for path in paths:
            link = await host.upload(path)
            console.print(f"[green]⬆️  Uploaded[/green] {path.name} → {link}")
            links.append(link)
    finally:
        await host.http_client.aclose()
    return links


async def login_async(app_config: AppConfig, api_key: str) -> int:
    store = CredentialStore(app_config.credential_path)
    http = text_service_client(app_config)
    try:
        status = await login(http, store, api_key)
    except ValidationError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 1
    finally:
        await http.aclose()

    if status is KeyStatus.VALID:
        console.print(f"[green]✅ Key accepted and saved to[/green] {store.path}")
        return 0
    if status is KeyStatus.INVALID:
        console.print("[red]ERROR: Invalid API key.[/red]")
    else:
        console.print("[red]ERROR: Could not reach the service to check the key.[/red]")
    return 1


async def create_async(
    app_config: AppConfig,
    studio_config: StudioConfig,
    uploads: Sequence[Path],
    output_dir: Path,
) -> int:
    """Run one listing cycle and save its artifacts.

    Returns:
        0 when every angle rendered, 2 when some failed, 1 on flow failure
    """
    store = CredentialStore(app_config.credential_path)
    api_key = resolve_api_key(app_config, store)
    if not api_key:
        console.print("[red]ERROR: No API key. Run `snapsell login` first.[/red]")
        return 1

    if uploads:
        try:
            for link in await upload_photos(app_config, uploads):
                studio_config.add_reference_url(link)
        except (ImageHostError, FileNotFoundError) as e:
            console.print(f"[red]ERROR: Upload failed: {e}[/red]")
            return 1

    console.print(
        f"[bold]Creating listing[/bold] for {studio_config.item_name or 'item'} "
        f"({len(studio_config.reference_image_urls)} reference photo(s), "
        f"{studio_config.image_size}px, seed {studio_config.seed})"
    )

    async with open_studio(app_config, api_key) as studio:
        studio.state.subscribe(lambda result: console.print(format_angle(result)))
        try:
            pack = await studio.create_listing_pack(studio_config)
        except Exception as e:
            logger.debug("Listing flow failed", exc_info=True)
            console.print(f"[red]ERROR: {describe_failure(e)}[/red]")
            return 1

        written = save_pack(pack, output_dir, studio_config.item_name)

    console.print(f"\n[bold]{pack.listing.platform_listing.title}[/bold]")
    console.print(f"Category: {pack.listing.likely_category}")
    console.print(f"\n[green]📁 Saved {len(written)} file(s) to[/green] {written[-1].parent}")

    if pack.failed:
        console.print(f"[yellow]{len(pack.failed)} angle(s) failed to render.[/yellow]")
        return 2
    return 0


def cmd_login(args: argparse.Namespace, app_config: AppConfig) -> int:
    api_key = args.key or Prompt.ask("API key (pk_ or sk_)", password=True, console=console)
    return asyncio.run(login_async(app_config, api_key))


def cmd_logout(args: argparse.Namespace, app_config: AppConfig) -> int:
    if CredentialStore(app_config.credential_path).clear():
        console.print("[green]✅ Logged out[/green]")
    else:
        console.print("No stored key.")
    return 0


def cmd_upload(args: argparse.Namespace, app_config: AppConfig) -> int:
    try:
        links = asyncio.run(upload_photos(app_config, [Path(p) for p in args.files]))
    except (ImageHostError, FileNotFoundError) as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 1
    for link in links:
        print(link)
    return 0


def cmd_create(args: argparse.Namespace, app_config: AppConfig) -> int:
    try:
        studio_config = build_studio_config(args)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]ERROR: Could not load job: {e}[/red]")
        return 1

    return asyncio.run(
        create_async(
            app_config,
            studio_config,
            uploads=[Path(p) for p in args.upload or []],
            output_dir=Path(args.out).resolve(),
        )
    )


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI."""
    p = argparse.ArgumentParser(
        prog="snapsell",
        description="SnapSell - studio product photos and listing copy from reference photos",
    )
    p.add_argument(
        "--app-config",
        default=None,
        help="Path to app config YAML/JSON (default: snapsell.yaml if present)",
    )
    p.add_argument("--log-level", default=None, help="Override the configured log level")
    p.add_argument("--structured-logs", action="store_true", help="Emit JSON log lines")
    sub = p.add_subparsers(dest="cmd", required=True)

    login_p = sub.add_parser("login", help="Validate and store an API key")
    login_p.add_argument("--key", help="API key (prompted when omitted)")

    sub.add_parser("logout", help="Remove the stored API key")

    upload = sub.add_parser("upload", help="Upload local photos and print their public URLs")
    upload.add_argument("files", nargs="+", help="Image files")

    create = sub.add_parser("create", help="Generate listing copy and four studio photos")
    create.add_argument("--job", help="Job config YAML/JSON (item context, reference URLs)")
    create.add_argument(
        "--ref", action="append", help="Reference image URL (repeatable)", metavar="URL"
    )
    create.add_argument(
        "--upload", action="append", help="Local photo to upload as reference (repeatable)"
    )
    create.add_argument("--item", dest="item_name", help="Item name")
    create.add_argument("--brand", help="Brand")
    create.add_argument("--category", dest="category_hint", help="Category hint")
    create.add_argument("--condition", choices=[c.value for c in Condition])
    create.add_argument("--platform", choices=[pl.value for pl in Platform])
    create.add_argument("--background", choices=[b.value for b in BackgroundStyle])
    create.add_argument("--size", type=int, choices=[768, 1024], help="Square render size")
    create.add_argument("--seed", type=int, help="Base seed (random when omitted)")
    create.add_argument("--unsafe", action="store_true", help="Disable the safety filter")
    create.add_argument("--out", default=".", help="Output directory (default: current dir)")

    return p


_COMMANDS = {
    "login": cmd_login,
    "logout": cmd_logout,
    "upload": cmd_upload,
    "create": cmd_create,
}


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point for CLI."""
    args = build_arg_parser().parse_args(argv)

    try:
        app_config = load_app_config(args.app_config)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]ERROR: Could not load config: {e}[/red]")
        sys.exit(1)

    configure_logging(
        level=args.log_level or app_config.logging.level,
        format_string=app_config.logging.format,
        filename=app_config.logging.filename,
        structured=args.structured_logs or app_config.logging.structured,
    )

    sys.exit(_COMMANDS[args.cmd](args, app_config))


if __name__ == "__main__":
    main()

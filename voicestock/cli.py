"""
voicestock CLI.

Speak (or type) a product and a quantity; get catalog matches back.

Commands:
    voicestock match "两个狗套" --catalog products.json
    voicestock listen --catalog products.json
    voicestock check
"""

import argparse
import asyncio
import sys
from typing import Optional

from loguru import logger

from .config import AppConfig
from .credentials import EnvCredentialStore
from .errors import CaptureError, RemoteAuthError
from .log import configure_logging, mask_key
from .matching.resolver import MatchResolver, Resolution
from .schemas.catalog import Catalog, filter_by_category, load_catalog
from .voice.speech_to_text import SpeechToText


def print_header():
    """Print CLI header."""
    print("""
╔═══════════════════════════════════════════════════════════════╗
║                                                               ║
║     VOICESTOCK - Spoken Stock Entry                           ║
║                                                               ║
║     Say a product and a quantity - AI finds the item          ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """)


def check_dependencies(config: Optional[AppConfig] = None) -> bool:
    """Check if voice dependencies are installed and show backend setup."""
    missing = []

    try:
        import faster_whisper
    except ImportError:
        missing.append("faster-whisper")

    try:
        import sounddevice
    except (ImportError, OSError):
        # OSError when the PortAudio library itself is missing
        missing.append("sounddevice")

    if missing:
        print("Missing voice dependencies:")
        for dep in missing:
            print(f"   - {dep}")
        print("\nInstall with:")
        print("   pip install voicestock[voice]")
        print("   # or")
        print("   pip install faster-whisper sounddevice")
    else:
        from .voice.microphone import has_input_device
        if has_input_device():
            print("   Microphone detected")
        else:
            print("   No microphone found - 'listen' will not work")

    config = config or AppConfig.from_env()
    credentials = EnvCredentialStore(config.credential_env)

    print("\nMatchers (in fallback order):")
    for matcher in config.resolver.matchers:
        family = matcher.family_name
        if matcher.backend == "ollama":
            from .llm.ollama_provider import OllamaProvider
            models = OllamaProvider(model=matcher.model, host=matcher.base_url).list_local_models()
            state = "model pulled" if matcher.model in models else "model not available locally"
        else:
            api_key = credentials.get_api_key(family)
            state = f"key {mask_key(api_key)}" if api_key else f"no key - set {config.credential_env.get(family)}"
        print(f"   {matcher.backend}:{matcher.model} ({state})")
    print("   local scorer (always available)")

    if not config.resolver.use_remote:
        print("\n   Quick search mode: remote matchers disabled")

    return not missing


def print_resolution(resolution: Resolution, catalog: Catalog) -> None:
    """Print a ranked table of suggestions."""
    by_id = {p.id: p for p in catalog}
    result = resolution.result

    if resolution.auth_error is not None:
        print(f"\n⚠️  {RemoteAuthError.user_message} ({resolution.auth_error.backend})")

    print(f"\nSource: {resolution.source}")
    print(f"Quantity: {result.quantity_or_default}"
          + ("" if result.detected_quantity else " (not heard, default)"))

    if not result.suggestions:
        print("No products to suggest.")
        return

    print(f"\n{'':2} {'ID':<12} {'Name':<24} {'Category':<12} {'Unit':<6} {'Price':>8}")
    print("-" * 70)
    for product_id in result.suggestions:
        product = by_id.get(product_id)
        if product is None:
            continue
        marker = "✓" if product_id == result.matched_product_id else " "
        print(f"{marker:2} {product.id:<12} {product.name:<24} {product.category:<12} "
              f"{product.unit:<6} {product.price:>8.2f}")


def _load(args) -> Catalog:
    catalog = load_catalog(args.catalog)
    if args.category:
        catalog = filter_by_category(catalog, args.category)
    if not catalog:
        logger.warning("Catalog is empty")
    return catalog


def _resolver(config: AppConfig, args) -> MatchResolver:
    if args.no_remote:
        config.resolver.use_remote = False
    return MatchResolver.from_config(config.resolver, EnvCredentialStore(config.credential_env))


def cmd_match(args, config: AppConfig) -> int:
    catalog = _load(args)
    resolution = _resolver(config, args).resolve_detailed(args.text, catalog)
    print(f"\nTranscript: \"{args.text}\"")
    print_resolution(resolution, catalog)
    return 0


def cmd_listen(args, config: AppConfig) -> int:
    from .voice.microphone import Microphone
    from .voice.scheduler import AsyncioScheduler
    from .voice.session import CaptureSession
    from .voice.whisper_engine import WhisperEngine

    catalog = _load(args)
    resolver = _resolver(config, args)
    capture = config.capture
    if args.seconds:
        capture.max_duration = args.seconds

    stt = SpeechToText(model_size=args.model or capture.whisper_model, language=capture.language)
    print(f"Loading Whisper model '{stt.model_size}'...")
    stt.load(on_progress=lambda pct: print(f"\r   {pct:5.1f}%", end="", flush=True))
    print()

    loop = asyncio.new_event_loop()
    outcome: dict = {}

    def on_transcript(text: str) -> None:
        outcome["transcript"] = text
        loop.stop()

    def on_error(error: CaptureError) -> None:
        outcome["error"] = error
        loop.stop()

    def on_tick(remaining: int) -> None:
        print(f"\r🎤 Listening... {remaining:2d}s left (Ctrl+C to stop)", end="", flush=True)

    session = CaptureSession(
        engine=WhisperEngine(stt, loop, capture),
        scheduler=AsyncioScheduler(loop),
        microphone=Microphone(),
        config=capture,
        on_transcript=on_transcript,
        on_error=on_error,
        on_tick=on_tick,
    )

    try:
        session.start()
    except CaptureError as e:
        print(f"\n❌ {e.user_message}")
        loop.close()
        return 1

    try:
        loop.run_forever()
    except KeyboardInterrupt:
        session.stop()
        if session.is_active:
            loop.run_forever()
    finally:
        loop.close()
    print()

    if "error" in outcome:
        print(f"\n❌ {outcome['error'].user_message}")
        return 1

    transcript = outcome.get("transcript", "")
    print(f"\nTranscript: \"{transcript}\"")
    print_resolution(resolver.resolve_detailed(transcript, catalog), catalog)
    return 0


def cmd_check(args, config: AppConfig) -> int:
    return 0 if check_dependencies(config) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voicestock",
        description="Voice-driven product lookup for stock entry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Resolve a typed transcript
  voicestock match "两个狗套" --catalog products.json

  # Local scorer only (quick search)
  voicestock match "护膝 3" --catalog products.csv --no-remote

  # Speak for up to 10 seconds
  voicestock listen --catalog products.json --seconds 10

  # Check audio setup and API keys
  voicestock check
        """
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_catalog_args(sub):
        sub.add_argument("--catalog", "-c", required=True, help="Catalog file (.json or .csv)")
        sub.add_argument("--category", default=None, help="Only match products in this category")
        sub.add_argument(
            "--no-remote",
            action="store_true",
            help="Skip AI matchers and use the local scorer only"
        )

    match_parser = subparsers.add_parser("match", help="Resolve a transcript to products")
    match_parser.add_argument("text", help="Transcript, e.g. \"两个狗套\"")
    add_catalog_args(match_parser)
    match_parser.set_defaults(func=cmd_match)

    listen_parser = subparsers.add_parser("listen", help="Capture speech and resolve it")
    add_catalog_args(listen_parser)
    listen_parser.add_argument(
        "--model", "-m",
        default=None,
        choices=SpeechToText.AVAILABLE_MODELS,
        help="Whisper model size (default: VOICESTOCK_WHISPER_MODEL or base)"
    )
    listen_parser.add_argument("--seconds", "-s", type=float, default=None, help="Capture deadline")
    listen_parser.set_defaults(func=cmd_listen)

    check_parser = subparsers.add_parser("check", help="Check dependencies and API keys")
    check_parser.set_defaults(func=cmd_check)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = AppConfig.from_env(args.env_file)
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(2)

    configure_logging(args.log_level or config.log_level)
    print_header()

    try:
        code = args.func(args, config)
    except (OSError, ValueError) as e:
        print(f"\n❌ Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\n⏹️ Interrupted by user")
        sys.exit(0)

    sys.exit(code)


if __name__ == "__main__":
    main()

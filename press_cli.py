# press_cli.py
import argparse
import asyncio
import os
import time

from press import settings
from press.app import EXIT_NO_INPUT, RunCallbacks, RunOptions, run_press
from press.clients.chat_completions import ChatCompletionsClient
from press.config import PressConfig, load_config, resolve_api_key, save_config, update_config
from press.console_capture import capture_piped_output
from press.errors import ConfigError, RollbackError
from press.log import parse_level, setup_base_logger
from press.writer import rollback_last_run

EXIT_USAGE = 2
SUBCOMMANDS = ("config", "model-config", "rollback")


def _make_callbacks(verbose: bool) -> RunCallbacks:
    def on_phase_start(name: str):
        print(f"=== {name} ===")

    def on_sources(sources):
        print(f"Found {len(sources)} file(s)")
        if verbose:
            for s in sources:
                print(f"  - {s.path}")

    def on_chunks(chunks):
        if len(chunks) > 1:
            print(f"Input split into {len(chunks)} chunks")

    def on_chunk(r):
        label = f"[chunk {r.chunk.index}/{r.chunk.total_chunks}]"
        if r.error:
            print(f"{label} FAILED: {r.error}")
            return
        retries = r.response.retry_state.attempt_count
        extra = f" after {retries} retries" if retries else ""
        print(f"{label} OK{extra}  {r.response.latency_ms} ms  chars={len(r.response.raw_text)}")

    return RunCallbacks(
        on_phase_start=on_phase_start,
        on_sources=on_sources,
        on_chunks=on_chunks,
        on_chunk=on_chunk,
    )


def _print_summary(outcome, output_directory: str, elapsed_s: float):
    print("\n=== Summary ===")
    if outcome.parsed is not None:
        for w in outcome.parsed.warnings:
            print(f"warning: {w}")
    if outcome.report is not None:
        for p in outcome.report.written:
            print(f"wrote {p}")
        for p, why in outcome.report.failed.items():
            print(f"FAILED {p}: {why}")
        print(f"Saved {len(outcome.report.written)} file(s); output directory: {output_directory}")
    if outcome.error:
        print(f"Error: {outcome.error}")
    print(f"Done in {elapsed_s:.1f}s (exit code {outcome.exit_code})")


def _effective_config(args, config: PressConfig) -> PressConfig:
    """Apply one-off flag overrides; the same validation as the config file."""
    return update_config(
        config,
        output_directory=args.output_directory,
        system_prompt=args.system_prompt,
        retries=args.retries,
        chunk_size=args.chunk_size,
        log_level=args.log_level,
        temperature=args.temp,
    )


async def _run(args, config: PressConfig) -> int:
    eff = _effective_config(args, config)
    setup_base_logger(level=parse_level(eff.log_level))

    api_key = resolve_api_key(args.api_key, config)
    if not api_key:
        print("API key is required. Pass --api-key once (it is saved) or set PRESS_API_KEY.")
        return EXIT_NO_INPUT
    if args.api_key and args.api_key != config.api_key:
        save_config(update_config(config, api_key=args.api_key))
        print(f"API key saved to {settings.config_path()}")

    console_output = capture_piped_output(eff.pipe_output_lines) if args.pipe_output else None

    client = ChatCompletionsClient(
        api_key=api_key,
        model=settings.PRESS_MODEL,
        base_url=settings.PRESS_BASE_URL,
        temperature=eff.temperature,
    )
    options = RunOptions(
        paths=args.paths,
        prompt=args.prompt,
        output_directory=eff.output_directory,
        system_prompt=eff.system_prompt,
        auto=args.auto,
        retries=eff.retries,
        chunk_size=eff.chunk_size,
        ignore=args.ignore or [],
        console_output=console_output,
    )

    t0 = time.perf_counter()
    outcome = await run_press(options, client=client, callbacks=_make_callbacks(args.verbose))
    _print_summary(outcome, eff.output_directory, time.perf_counter() - t0)
    return outcome.exit_code


def _cmd_config(args, config: PressConfig) -> int:
    updated = update_config(
        config,
        chunk_size=args.set_chunk_size,
        log_level=args.set_log_level,
        output_directory=args.set_output_directory,
        retries=args.set_retries,
    )
    save_config(updated)
    if args.set_chunk_size is not None:
        print(f"Chunk size set to {updated.chunk_size}")
    if args.set_log_level is not None:
        print(f"Log level set to {updated.log_level}")
    if args.set_output_directory is not None:
        print(f"Output directory set to {updated.output_directory}")
    if args.set_retries is not None:
        print(f"Retries set to {updated.retries}")
    return 0


def _cmd_model_config(args, config: PressConfig) -> int:
    updated = update_config(
        config,
        api_key=args.set_api_key,
        system_prompt=args.set_system_prompt,
        temperature=args.set_temperature,
    )
    save_config(updated)
    if args.set_api_key is not None:
        print("API key set")
    if args.set_system_prompt is not None:
        print(f"System prompt set to: {updated.system_prompt}")
    if args.set_temperature is not None:
        print(f"Temperature set to: {updated.temperature}")
    return 0


def _cmd_rollback(args, config: PressConfig) -> int:
    output_directory = args.output_directory or config.output_directory
    try:
        actions = rollback_last_run(output_directory)
    except RollbackError as e:
        print(f"Rollback error: {e}")
        return 1
    for line in actions:
        print(line)
    print("Rollback complete.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="press",
        description="Send files and a prompt to an LLM and write the returned files back to disk",
        epilog="Subcommands go first: press config --set-retries 5, not press --paths a.rs config.",
    )
    ap.add_argument("--paths", nargs="+", default=None, help="Paths to directories or files to process")
    ap.add_argument("--output-directory", default=None, help="Where to write results (default: ./)")
    ap.add_argument("--prompt", default=None, help="Prompt for the AI")
    ap.add_argument("--system-prompt", default=None, help='System prompt (default: "You are a helpful assistant")')
    ap.add_argument("--api-key", default=None, help="API key; saved to the config file on first use")
    ap.add_argument("--auto", action="store_true", help="Overwrite the original files instead of writing to the output directory")
    ap.add_argument("--retries", type=int, default=None, help="Retries per request after a transient failure (default: 3)")
    ap.add_argument("--chunk-size", type=int, default=None, help="Maximum lines per request (default: 50)")
    ap.add_argument("--pipe-output", action="store_true", help="Append console output piped into stdin to the prompt")
    ap.add_argument("--log-level", choices=["debug", "info", "warn", "error"], default=None, help="Log level (default: info)")
    ap.add_argument("--temp", type=float, default=None, help="Sampling temperature between 0.0 and 1.0 (default: 0.0)")
    ap.add_argument("--ignore", nargs="+", default=None, help="Paths to files or directories to skip")
    ap.add_argument("--verbose", action="store_true", help="List every file that is sent")

    sub = ap.add_subparsers(dest="command")

    cfg = sub.add_parser("config", help="Manage configuration options")
    cfg.add_argument("--set-chunk-size", type=int, default=None, help="Set the chunk size for splitting input")
    cfg.add_argument("--set-log-level", choices=["debug", "info", "warn", "error"], default=None, help="Set the log level")
    cfg.add_argument("--set-output-directory", default=None, help="Set the output directory")
    cfg.add_argument("--set-retries", type=int, default=None, help="Set the maximum number of retries for API calls")

    mcfg = sub.add_parser("model-config", help="Manage model configuration options")
    mcfg.add_argument("--set-api-key", default=None, help="Set the API key")
    mcfg.add_argument("--set-system-prompt", default=None, help="Set the system prompt for the AI")
    mcfg.add_argument("--set-temperature", type=float, default=None, help="Set the temperature for the AI")

    rb = sub.add_parser("rollback", help="Undo the files written by the last run")
    rb.add_argument("--output-directory", default=None, help="Output directory of the run to undo")

    return ap


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    try:
        config = load_config()
        if args.command == "config":
            code = _cmd_config(args, config)
        elif args.command == "model-config":
            code = _cmd_model_config(args, config)
        elif args.command == "rollback":
            code = _cmd_rollback(args, config)
        else:
            stray = [p for p in (args.paths or []) + (args.ignore or []) if p in SUBCOMMANDS and not os.path.exists(p)]
            if stray:
                ap.error(f"'{stray[0]}' is a subcommand and must come first: press {stray[0]} ...")
            if not args.paths:
                ap.error("--paths is required")
            if not args.prompt:
                ap.error("--prompt is required")
            code = asyncio.run(_run(args, config))
    except ConfigError as e:
        print(f"Configuration error: {e}")
        code = EXIT_USAGE
    return code


if __name__ == "__main__":
    raise SystemExit(main())

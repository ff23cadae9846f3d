"""Command-line entry point.

Usage:
    aicli                           # interactive session
    aicli "explain this error"      # one-shot
    cat log.txt | aicli "summarize"  # one-shot with piped input
    aicli -f main.py "review this"  # one-shot with file input
    aicli mcp list                  # configured MCP servers
    aicli mcp add fs npx -y @modelcontextprotocol/server-filesystem /tmp
    aicli mcp remove fs
    aicli models                    # known models
    aicli conf                      # configuration paths and defaults
"""

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
from typing import Dict, List, Optional, Sequence, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory

from aicli.config import (
    AppConfig,
    ConfigError,
    get_config_dir,
    get_mcp_config_path,
    get_preferences_path,
    load_env_file,
    load_preferences,
    save_preferences,
)
from aicli.input import format_input_content, read_files, read_stdin
from aicli.mcp_context_manager import (
    MCPClientManager,
    MCPConfigError,
    ServerConfig,
    load_server_configs,
    save_server_configs,
)
from aicli.output_buffer import OutputBuffer
from aicli.pipeline import ResponsePipeline
from aicli.plugins.markdown_formatter import create_plugin as create_formatter
from aicli.plugins.model_provider import (
    Message,
    ModelProviderPlugin,
    ProviderConfig,
    TurnOutcome,
    get_capability,
    list_models,
    load_provider,
)
from aicli.plugins.model_provider.google_genai import GoogleGenAIProviderError
from aicli.prompts import build_contextual_prompt, build_system_prompt
from aicli.trace import trace as _trace_write
from aicli.ui import ConsoleUI, ToolActivityAdapter

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit")


def _trace(msg: str) -> None:
    _trace_write("CLI", msg)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aicli",
        description="Gemini assistant for the terminal, with MCP and built-in tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Subcommands:
  aicli mcp list     Show configured MCP servers
  aicli mcp add      Add an MCP server (aicli mcp add --help)
  aicli mcp remove   Remove an MCP server
  aicli models       Show known models and their built-in tools
  aicli conf         Show configuration paths and stored defaults

Toolsets:
  external           MCP server tools (default)
  builtin            Gemini code execution and search
  code_execution     Gemini code execution only
  search             Gemini search only
        """,
    )
    parser.add_argument("prompt", nargs="*", help="Prompt text (omit for interactive mode)")
    parser.add_argument(
        "-f", "--file",
        action="append",
        default=[],
        metavar="PATH",
        help="Input file (repeatable)",
    )
    parser.add_argument("-m", "--model", help="Model to use")
    parser.add_argument(
        "-t", "--max-tokens",
        type=int,
        dest="max_tokens",
        help="Maximum output tokens (default: 8192)",
    )
    parser.add_argument("-s", "--system", help="Replace the default system prompt")
    parser.add_argument(
        "--toolset",
        help="Tool category: external, builtin, code_execution, search",
    )
    parser.add_argument(
        "--save-defaults",
        action="store_true",
        help="Store the given --model/--toolset as defaults and exit",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to .env file (default: .env)",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show settings and debug logs")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# ==================== Subcommands ====================

MCP_USAGE = """Usage:
  aicli mcp list
  aicli mcp add [--env KEY=VALUE]... [--force] NAME COMMAND [ARGS...]
  aicli mcp remove NAME"""


def build_mcp_add_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aicli mcp add",
        description="Add an MCP server to the config file",
    )
    parser.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Environment variable for the server process (repeatable)",
    )
    parser.add_argument("--force", action="store_true", help="Replace a server with the same name")
    parser.add_argument("name", help="Server name")
    parser.add_argument("command", help="Executable that starts the server")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Arguments passed to the executable")
    return parser


def build_mcp_remove_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aicli mcp remove",
        description="Remove an MCP server from the config file",
    )
    parser.add_argument("name", help="Server name")
    return parser


def parse_env_assignments(assignments: Sequence[str]) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` strings.

    Raises:
        ValueError: An assignment has no ``=`` or an empty key.
    """
    env: Dict[str, str] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid --env value '{assignment}' (expected KEY=VALUE)")
        env[key.strip()] = value
    return env


def run_mcp_command(argv: Sequence[str], ui: ConsoleUI) -> int:
    subcommand = argv[0] if argv else "help"
    if subcommand == "list":
        return _mcp_list(ui)
    if subcommand == "add":
        return _mcp_add(build_mcp_add_parser().parse_args(argv[1:]), ui)
    if subcommand == "remove":
        return _mcp_remove(build_mcp_remove_parser().parse_args(argv[1:]), ui)

    ui.console.print(MCP_USAGE, markup=False, soft_wrap=True)
    ui.console.print(f"Config file: {get_mcp_config_path()}", markup=False, soft_wrap=True)
    return 0 if subcommand == "help" else 1


def _mcp_list(ui: ConsoleUI) -> int:
    path = get_mcp_config_path()
    try:
        configs = load_server_configs(path)
    except MCPConfigError as e:
        ui.error(str(e))
        return 1

    if not configs:
        ui.info("No MCP servers configured.")
        ui.info("Add one with 'aicli mcp add NAME COMMAND [ARGS...]'")
        return 0

    ui.info(f"Configured MCP servers ({len(configs)}):")
    ui.console.print()
    for config in configs:
        ui.console.print(f"📦 {config.name}", markup=False)
        ui.console.print(f"   command: {config.command}", markup=False)
        if config.args:
            ui.console.print(f"   args: {' '.join(config.args)}", markup=False)
        if config.env:
            env = ", ".join(f"{k}={v}" for k, v in config.env.items())
            ui.console.print(f"   env: {env}", markup=False)
        ui.console.print()
    return 0


def _mcp_add(args: argparse.Namespace, ui: ConsoleUI) -> int:
    path = get_mcp_config_path()
    try:
        env = parse_env_assignments(args.env)
        new_config = ServerConfig.from_dict(
            args.name, {"command": args.command, "args": list(args.args), "env": env or None},
        )
        configs = load_server_configs(path)
    except (ValueError, MCPConfigError) as e:
        ui.error(str(e))
        return 1

    names = [config.name for config in configs]
    if new_config.name in names:
        if not args.force:
            ui.error(f"MCP server '{new_config.name}' already exists (use --force to replace it)")
            return 1
        configs[names.index(new_config.name)] = new_config
    else:
        configs.append(new_config)

    try:
        save_server_configs(path, configs)
    except MCPConfigError as e:
        ui.error(str(e))
        return 1
    ui.success(f"Added MCP server '{new_config.name}' to {path}")
    return 0


def _mcp_remove(args: argparse.Namespace, ui: ConsoleUI) -> int:
    path = get_mcp_config_path()
    try:
        configs = load_server_configs(path)
    except MCPConfigError as e:
        ui.error(str(e))
        return 1

    remaining = [config for config in configs if config.name != args.name]
    if len(remaining) == len(configs):
        ui.error(f"MCP server '{args.name}' does not exist")
        return 1

    try:
        save_server_configs(path, remaining)
    except MCPConfigError as e:
        ui.error(str(e))
        return 1
    ui.success(f"Removed MCP server '{args.name}'")
    return 0


def run_models_command(ui: ConsoleUI) -> int:
    default_model = load_preferences().default_model
    for capability in list_models():
        marker = "*" if capability.model_id == default_model else " "
        tools = ", ".join(tool.value for tool in capability.builtin_tools) or "none"
        ui.console.print(
            f"{marker} {capability.model_id:<46} {capability.display_name} (built-in tools: {tools})",
            markup=False,
        )
    return 0


def run_conf_command(ui: ConsoleUI) -> int:
    prefs = load_preferences()
    ui.box(
        f"Config directory: {get_config_dir()}\n"
        f"Preferences: {get_preferences_path()}\n"
        f"MCP config: {get_mcp_config_path()}\n"
        f"Default model: {prefs.default_model}\n"
        f"Default toolset: {prefs.default_toolset.value}\n"
        f"Last updated: {prefs.last_updated or 'never'}",
        title="Configuration",
    )
    return 0


def save_defaults(app_config: AppConfig, ui: ConsoleUI) -> int:
    prefs = load_preferences()
    prefs.default_model = app_config.model
    prefs.default_toolset = app_config.toolset
    if not save_preferences(prefs):
        ui.error(f"Could not write {get_preferences_path()}")
        return 1
    ui.success(f"Default model: {prefs.default_model}")
    ui.success(f"Default toolset: {prefs.default_toolset.value}")
    return 0


# ==================== Chat ====================

async def run_turn(pipeline: ResponsePipeline, ui: ConsoleUI, history: List[Message]) -> TurnOutcome:
    """One request/response cycle with spinner and separator handling."""
    ui.show_spinner("Thinking")
    try:
        outcome = await pipeline.run(history)
    finally:
        ui.hide_spinner()
    ui.newline()
    if outcome.used_tools:
        ui.divider()
    return outcome


async def run_oneshot(
    pipeline: ResponsePipeline,
    ui: ConsoleUI,
    provider: ModelProviderPlugin,
    user_message: str,
) -> int:
    if not user_message:
        ui.error("Nothing to send: give a prompt, --file or piped input")
        return 1
    try:
        await run_turn(pipeline, ui, [Message.user(user_message)])
    except Exception as e:
        _report_error(e, ui, provider)
        return 1
    return 0


async def run_interactive(
    pipeline: ResponsePipeline,
    ui: ConsoleUI,
    provider: ModelProviderPlugin,
) -> int:
    ui.info("Interactive mode. Type 'exit' to quit.")
    session = PromptSession(history=InMemoryHistory())
    history: List[Message] = []
    loop = asyncio.get_running_loop()

    while True:
        try:
            text = await session.prompt_async("> ")
        except KeyboardInterrupt:
            continue
        except EOFError:
            break

        text = text.strip()
        if not text:
            continue
        if text in EXIT_COMMANDS:
            break

        history.append(Message.user(text))
        turn = asyncio.ensure_future(run_turn(pipeline, ui, history))
        cancel_on_interrupt = _install_interrupt_handler(loop, turn)
        try:
            outcome = await turn
        except asyncio.CancelledError:
            history.pop()
            ui.newline()
            ui.warning("Cancelled")
            continue
        except Exception as e:
            history.pop()
            _report_error(e, ui, provider)
            continue
        finally:
            if cancel_on_interrupt:
                loop.remove_signal_handler(signal.SIGINT)

        reply = outcome.to_message()
        if reply is not None:
            history.append(reply)

    ui.info("Bye.")
    return 0


def _install_interrupt_handler(loop: asyncio.AbstractEventLoop, task: "asyncio.Future") -> bool:
    """Cancel ``task`` on Ctrl-C; False where signal handlers are unsupported."""
    try:
        loop.add_signal_handler(signal.SIGINT, task.cancel)
    except (NotImplementedError, RuntimeError):
        return False
    return True


def _report_error(exc: Exception, ui: ConsoleUI, provider: ModelProviderPlugin) -> None:
    _trace_write("CLI", f"turn failed: {type(exc).__name__}: {exc}", include_traceback=True)
    ui.error(f"Error: {exc}")
    classify = getattr(provider, "classify_error", None)
    if classify is None:
        return
    hints = classify(exc)
    if hints.get("auth"):
        ui.warning("Check your API key (GEMINI_API_KEY)")
    elif hints.get("transient"):
        ui.warning("The service may be temporarily unavailable; try again shortly")


async def run_chat(
    app_config: AppConfig,
    provider: ModelProviderPlugin,
    ui: ConsoleUI,
    user_message: str,
    system_prompt: str,
    interactive: bool,
    color: bool,
) -> int:
    formatter = create_formatter()
    formatter.initialize({"console_width": ui.width, "color": color})
    activity = ToolActivityAdapter(ui)

    with _server_errlog(app_config.verbose) as errlog:
        async with MCPClientManager(errlog=errlog) as manager:
            sessions = ()
            if app_config.uses_external_tools:
                configs = load_server_configs(app_config.mcp_config_path)
                if configs:
                    ui.show_spinner("Connecting to MCP servers...")
                    try:
                        sessions = await manager.connect_all(configs)
                    except Exception as e:
                        ui.hide_spinner()
                        _trace_write("CLI", f"MCP connect failed: {e}", include_traceback=True)
                        ui.error(f"Failed to connect to MCP servers: {e}")
                        return 1
                    ui.hide_spinner()
                    ui.success(f"Connected to {len(sessions)} MCP server(s)")

            pipeline = ResponsePipeline(
                provider,
                app_config.to_pipeline_config(sessions, system_prompt),
                buffer_factory=lambda: OutputBuffer(formatter.format_output, ui.write),
                activity=activity,
                first_output=ui.hide_spinner,
            )
            if interactive:
                return await run_interactive(pipeline, ui, provider)
            return await run_oneshot(pipeline, ui, provider, user_message)


@contextlib.contextmanager
def _server_errlog(verbose: bool):
    """MCP server stderr: shown with --verbose, discarded otherwise."""
    if verbose:
        yield sys.stderr
        return
    with open(os.devnull, "w") as devnull:
        yield devnull


def _show_settings(app_config: AppConfig, ui: ConsoleUI, interactive: bool) -> None:
    capability = get_capability(app_config.model)
    ui.box(
        f"Mode: {'interactive' if interactive else 'one-shot'}\n"
        f"Model: {app_config.model}"
        f"{'' if capability else ' (not in catalog)'}\n"
        f"Max tokens: {app_config.max_output_tokens}\n"
        f"Toolset: {app_config.toolset.value}",
        title="Settings",
    )


# ==================== Main ====================

def main(argv: Optional[Sequence[str]] = None, stdin: Optional[TextIO] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    if argv and argv[0] in ("mcp", "models", "conf"):
        ui = ConsoleUI(color="NO_COLOR" not in os.environ)
        if argv[0] == "mcp":
            return run_mcp_command(argv[1:], ui)
        if argv[0] == "models":
            return run_models_command(ui)
        return run_conf_command(ui)

    args = build_parser().parse_args(argv)
    load_env_file(args.env_file)
    configure_logging(args.verbose)
    color = not args.no_color and "NO_COLOR" not in os.environ
    ui = ConsoleUI(color=color)

    try:
        app_config = AppConfig.resolve(args)
    except ConfigError as e:
        ui.error(str(e))
        return 1

    if args.save_defaults:
        return save_defaults(app_config, ui)

    stdin_stream = stdin if stdin is not None else sys.stdin
    try:
        files = read_files(args.file)
    except OSError as e:
        ui.error(f"Cannot read input file: {e}")
        return 1
    stdin_text = read_stdin(stdin_stream)
    input_content = format_input_content(files, stdin_text)

    prompt_text = " ".join(args.prompt)
    interactive = not prompt_text and not input_content
    if interactive and not (stdin_stream is not None and stdin_stream.isatty()):
        ui.error("Nothing to send: give a prompt, --file or piped input")
        return 1

    if app_config.verbose:
        _show_settings(app_config, ui, interactive)

    if interactive:
        system_prompt, user_message = build_system_prompt(app_config.system_prompt), ""
    else:
        contextual = build_contextual_prompt(input_content, prompt_text, app_config.system_prompt)
        system_prompt, user_message = contextual.system_prompt, contextual.user_message

    _trace(f"start: interactive={interactive} model={app_config.model} toolset={app_config.toolset.value}")

    try:
        provider = load_provider(config=ProviderConfig())
    except GoogleGenAIProviderError as e:
        ui.error(str(e))
        return 1

    try:
        return asyncio.run(run_chat(
            app_config, provider, ui, user_message, system_prompt, interactive, color,
        ))
    except MCPConfigError as e:
        ui.error(f"MCP configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        ui.newline()
        return 130
    finally:
        provider.shutdown()

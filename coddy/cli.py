#!/usr/bin/env python3
"""
Coddy - CLI Coding Tutor

Usage:
    coddy journey                  # start or continue your learning journey
    coddy start --language rust    # start a new journey
    coddy continue                 # pick up where you left off
    coddy progress                 # show your progress
    coddy lesson -l cpp            # one lesson on a topic of your choice
    coddy compile -l rust          # how to build programs in a language
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.syntax import Syntax
from rich.table import Table

from . import __version__
from .config import get_setting, prompt_for_backend
from .db import ProgressStore
from .db.progress import validate_journey_id
from .errors import (
    BackendUnavailable,
    CoddyError,
    ConfigError,
    EXIT_GENERATION_FAILED,
    EXIT_INTERRUPTED,
    EXIT_OK,
)
from .journey import JourneyController, LessonFlow, PracticeController
from .lessons import ContentGenerator, LessonEngine
from .lessons.state import (
    Difficulty,
    Journey,
    Language,
    LessonStatus,
    LessonStep,
    LessonType,
    ProgressSummary,
)
from .llm import create_llm_client, model_installed
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

SYNTAX_LEXERS = {
    Language.JAVASCRIPT: 'javascript',
    Language.CPP: 'cpp',
    Language.RUST: 'rust',
}

QUIT_WORDS = ('quit', 'exit', 'q', 'pause')


def build_engine() -> LessonEngine:
    """Wire backend client, generator and engine from settings"""
    client = create_llm_client()
    generator = ContentGenerator(
        client,
        timeout=get_setting('request_timeout'),
        retry_delay=get_setting('retry_delay'),
    )
    return LessonEngine(generator, max_attempts=get_setting('max_attempts'))


def build_controller(profile: str, lesson_limit: Optional[int] = None) -> JourneyController:
    """Journey operations for one profile"""
    return JourneyController(ProgressStore(), build_engine(), journey_id=profile,
                             lesson_limit=lesson_limit)


def resolve_profile() -> str:
    """Profile from CODDY_PROFILE or config when --profile is not given"""
    value = get_setting('profile')
    try:
        return validate_journey_id(value)
    except ValueError as e:
        raise ConfigError(f"Invalid profile setting: {e}") from None


# =============================================================================
# Presentation
# =============================================================================

def render_lesson(console: Console, step: LessonStep):
    """Show a generated lesson"""
    lesson, record = step.lesson, step.record

    console.print()
    console.print(Panel(
        f"[bold]{escape(lesson.title)}[/bold]\n"
        f"[dim]{record.stage} · {record.difficulty.display_name} · "
        f"lesson {step.position + 1} of {step.total}[/dim]",
        border_style="cyan",
    ))
    console.print(Markdown(lesson.explanation))

    if lesson.steps:
        console.print("\n[bold cyan]Step by step[/bold cyan]")
        for i, text in enumerate(lesson.steps, 1):
            console.print(f"  {i}. {escape(text)}")

    lexer = SYNTAX_LEXERS.get(lesson.language, 'text')
    for i, example in enumerate(lesson.code_examples, 1):
        console.print(f"\n[bold cyan]Example {i}[/bold cyan]")
        console.print(Syntax(example.code, lexer, theme="monokai", line_numbers=False))
        if example.explanation:
            console.print(Markdown(example.explanation))

    console.print()
    console.print(Panel(Markdown(lesson.exercise_prompt), title="Exercise", border_style="yellow"))
    console.print("[dim]Type your answer, or 'hint', 'skip', 'quit'.[/dim]")


def render_progress(console: Console, summary: ProgressSummary):
    """Show a progress summary"""
    console.print(Panel(
        f"[bold]Learning Journey[/bold] · {summary.language.display_name} "
        f"· profile [cyan]{summary.journey_id}[/cyan]",
        border_style="blue",
    ))
    console.print(f"Position: lesson {min(summary.position + 1, summary.total)} of {summary.total}")
    console.print(f"Passed: [green]{summary.passed}[/green]   Skipped: [yellow]{summary.skipped}[/yellow]")
    console.print(f"Complete: {summary.percent_complete:.0f}%")
    if summary.current_topic:
        console.print(f"Up next: [bold]{summary.current_topic}[/bold] ({summary.current_stage})")
    else:
        console.print("[green]Journey complete![/green]")

    table = Table(title="Stages")
    table.add_column("Stage")
    table.add_column("About", style="dim")
    table.add_column("Difficulty")
    table.add_column("Passed", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Lessons", justify="right")
    for stage in summary.stages:
        table.add_row(
            stage['name'],
            stage['description'],
            stage['difficulty'].title(),
            str(stage['passed']),
            str(stage['skipped']),
            str(stage['total']),
        )
    console.print(table)

    if summary.completed:
        console.print("\n[bold]Recent lessons:[/bold]")
        for record in summary.completed[-5:]:
            label = "[green]OK[/green]" if record.status is LessonStatus.PASSED else "[yellow]SKIP[/yellow]"
            console.print(f"  {label} {escape(record.topic)}" + (f" - {escape(record.content_ref)}" if record.content_ref else ""))


def choose_language(console: Console, question: str = "Select a language for your learning journey") -> Language:
    """Ask which language to learn"""
    choices = [lang.value for lang in Language]
    value = Prompt.ask(
        question,
        choices=choices,
        default=Language.JAVASCRIPT.value,
        console=console,
    )
    return Language(value)


JOURNEY_PAUSED = "Journey paused. Use 'coddy continue' to pick up here."
JOURNEY_DONE = "[bold green]Journey complete![/bold green] Every lesson is done."


def run_lessons(
    controller: LessonFlow,
    journey: Journey,
    console: Console,
    paused: str = JOURNEY_PAUSED,
    done: str = JOURNEY_DONE,
) -> int:
    """Interactive loop: show lesson, read answers, move on"""
    while True:
        with console.status("Generating lesson (this may take 30-60 seconds)..."):
            step = controller.next_step(journey)

        if step.complete:
            console.print(Panel(done, border_style="green"))
            return EXIT_OK

        render_lesson(console, step)
        hints_shown = 0

        while True:
            answer = Prompt.ask("[bold]Your answer[/bold]", console=console)
            command = answer.strip().lower()

            if not command:
                continue
            if command in QUIT_WORDS:
                console.print(f"\n[cyan]{paused}[/cyan]")
                return EXIT_OK
            if command == 'hint':
                hints = step.lesson.hints
                if hints_shown < len(hints):
                    console.print(f"[magenta]Hint:[/magenta] {escape(hints[hints_shown])}")
                    hints_shown += 1
                else:
                    console.print("[dim]No more hints for this exercise.[/dim]")
                continue

            if command == 'skip':
                result = controller.skip(journey)
            else:
                result = controller.answer(journey, answer)
            journey = result.journey

            if result.passed:
                console.print("[bold green]Correct![/bold green]")
                break
            if result.status is LessonStatus.SKIPPED:
                console.print(f"[yellow]Skipped.[/yellow] Expected answer: [bold]{escape(result.expected_answer)}[/bold]")
                break
            console.print(
                f"[red]Not quite.[/red] {result.attempts_left} attempt(s) left. "
                f"Type 'hint' for help."
            )

        if journey.is_complete:
            continue
        if not Confirm.ask("Continue with next lesson?", default=True, console=console):
            console.print(f"\n[cyan]{paused}[/cyan]")
            return EXIT_OK


# =============================================================================
# Commands
# =============================================================================

def cmd_start(args, console: Console) -> int:
    controller = build_controller(args.profile, args.lessons)
    language = args.language or choose_language(console)
    journey = controller.start(language, reset=args.reset)
    console.print(f"[bold]Starting Learning Journey![/bold] Language: [yellow]{language.display_name}[/yellow], "
                  f"{journey.total} lessons")
    return run_lessons(controller, journey, console)


def cmd_continue(args, console: Console) -> int:
    controller = build_controller(args.profile)
    journey = controller.resume()
    return run_lessons(controller, journey, console)


def cmd_journey(args, console: Console) -> int:
    controller = build_controller(args.profile, args.lessons)
    store = controller.store
    language = args.language
    if language is None and not store.exists(args.profile):
        language = choose_language(console)
    journey = controller.journey(language)
    return run_lessons(controller, journey, console)


def cmd_lesson(args, console: Console) -> int:
    language = args.language or choose_language(console, "Select a language")
    difficulty = args.difficulty or Difficulty(Prompt.ask(
        "Select difficulty",
        choices=[d.value for d in Difficulty],
        default=Difficulty.BEGINNER.value,
        console=console,
    ))
    lesson_type = args.type or LessonType(Prompt.ask(
        "Select lesson type",
        choices=[t.value for t in LessonType],
        default=LessonType.SHORT.value,
        console=console,
    ))
    topic = args.topic
    if topic is None:
        topic = Prompt.ask(
            "Enter a topic (e.g. 'variables', 'functions', 'loops') or leave blank for random",
            default="",
            show_default=False,
            console=console,
        )

    controller = PracticeController(build_engine())
    journey = controller.lesson(language, topic, difficulty, lesson_type)
    if not topic.strip():
        console.print(f"[yellow]No topic entered. Selected random topic: {escape(journey.lessons[0].topic)}[/yellow]")
    return run_lessons(controller, journey, console,
                       paused="Lesson closed.", done="[bold green]Lesson finished![/bold green]")


def cmd_compile(args, console: Console) -> int:
    console.print("[bold]Compilation & Build Guides[/bold]\n"
                  "Learn how to compile and build programs for each language.")
    language = args.language or choose_language(console, "Select a language")
    controller = PracticeController(build_engine())
    journey = controller.build_guide(language)
    return run_lessons(controller, journey, console,
                       paused="Guide closed.", done="[bold green]Build guide finished![/bold green]")


def cmd_progress(args, console: Console) -> int:
    controller = build_controller(args.profile)
    render_progress(console, controller.progress())
    return EXIT_OK


def cmd_check(args, console: Console) -> int:
    client = create_llm_client()
    try:
        if not client.ping():
            console.print(f"[red]Cannot reach Ollama at {client.base_url}[/red]")
            console.print("Make sure Ollama is running: 'ollama serve'")
            return EXIT_GENERATION_FAILED
        models = client.list_models()
    finally:
        client.close()

    console.print(f"[green]Ollama reachable at {client.base_url}[/green]")
    if model_installed(models, client.model):
        console.print(f"Model [bold]{client.model}[/bold] is installed.")
        return EXIT_OK
    console.print(f"[yellow]Model {client.model} is not installed.[/yellow] Run: ollama pull {client.model}")
    return EXIT_GENERATION_FAILED


def cmd_setup(args, console: Console) -> int:
    client = create_llm_client()
    try:
        models = client.list_models()
    except BackendUnavailable:
        models = None
    finally:
        client.close()
    prompt_for_backend(models)
    return EXIT_OK


def _language_arg(value: str) -> Language:
    try:
        return Language.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _profile_arg(value: str) -> str:
    try:
        return validate_journey_id(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _lessons_arg(value: str) -> int:
    try:
        count = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if count < 1:
        raise argparse.ArgumentTypeError("a journey needs at least one lesson")
    return count


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='coddy',
        description='Coddy - learn to code with lessons from a local model',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  coddy journey                       # Start or continue your journey
  coddy start --language rust         # Start a Rust journey
  coddy start -l cpp --lessons 8      # A shorter journey: the first 8 lessons
  coddy start --reset                 # Throw away the current journey and start over
  coddy continue                      # Resume from the last saved lesson
  coddy progress                      # Show progress
  coddy lesson -l rust --topic traits # One lesson, nothing saved
  coddy compile -l cpp                # How to build C++ programs
  coddy check                         # Check the Ollama backend

Make sure Ollama is running on http://localhost:11434 (or set OLLAMA_URL).
        """
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--profile', type=_profile_arg, default=None,
                        help='Journey profile name (default: "default")')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    sub = parser.add_subparsers(dest='command', metavar='command')

    p = sub.add_parser('start', help='Start a new learning journey')
    p.add_argument('--language', '-l', type=_language_arg, help='javascript, cpp or rust')
    p.add_argument('--reset', action='store_true', help='Replace an existing journey')
    p.add_argument('--lessons', type=_lessons_arg, default=None, metavar='N',
                   help='Only plan the first N lessons of the curriculum')
    p.set_defaults(handler=cmd_start)

    p = sub.add_parser('continue', help='Continue from where you left off')
    p.set_defaults(handler=cmd_continue)

    p = sub.add_parser('journey', help='Start or continue your learning journey')
    p.add_argument('--language', '-l', type=_language_arg, help='Language for a new journey')
    p.add_argument('--lessons', type=_lessons_arg, default=None, metavar='N',
                   help='Lesson count for a new journey')
    p.set_defaults(handler=cmd_journey)

    p = sub.add_parser('lesson', help='Take a single lesson (not saved)')
    p.add_argument('--language', '-l', type=_language_arg, help='javascript, cpp or rust')
    p.add_argument('--difficulty', '-d', type=Difficulty, choices=list(Difficulty),
                   metavar='{beginner,intermediate,advanced}')
    p.add_argument('--type', '-t', type=LessonType, choices=list(LessonType),
                   metavar='{short,medium,long}', help='Lesson length')
    p.add_argument('--topic', help='Lesson topic; empty for a random one')
    p.set_defaults(handler=cmd_lesson)

    p = sub.add_parser('compile', help='Learn how to compile/build programs for a language')
    p.add_argument('--language', '-l', type=_language_arg, help='javascript, cpp or rust')
    p.set_defaults(handler=cmd_compile)

    p = sub.add_parser('progress', help='Show your progress')
    p.set_defaults(handler=cmd_progress)

    p = sub.add_parser('check', help='Check that the model backend is reachable')
    p.set_defaults(handler=cmd_check)

    p = sub.add_parser('setup', help='Configure the model backend')
    p.set_defaults(handler=cmd_setup)

    return parser


def main(argv: Optional[List[str]] = None, console: Optional[Console] = None) -> int:
    """Main CLI entry point; returns the process exit code"""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    console = console or Console()

    if not getattr(args, 'handler', None):
        parser.print_help()
        return EXIT_OK

    try:
        if args.profile is None:
            args.profile = resolve_profile()
        return args.handler(args, console)
    except CoddyError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        return e.exit_code
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted. Progress up to the last finished step is saved.[/yellow]")
        return EXIT_INTERRUPTED
    except EOFError:
        console.print("\n[yellow]Input closed. Progress up to the last finished step is saved.[/yellow]")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())

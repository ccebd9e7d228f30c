"""Command-line interface for repo2prompt."""
import sys
import logging

import click
from rich.markup import escape
from rich.progress import Progress, TextColumn, BarColumn, TimeElapsedColumn

from . import __version__
from .core.models import Config, InvalidRootError, LlmModel
from .core.session import SelectionSession
from .core.tokenizer import format_estimate
from .utils.console import StatusConsole

logger = logging.getLogger(__name__)


def setup_logging(debug: bool) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.WARNING
    format_string = '[%(levelname)s] %(message)s'

    logging.basicConfig(
        level=level,
        format=format_string,
        handlers=[logging.StreamHandler(sys.stderr)]
    )

    # Reduce noise from external libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def _apply_toggles(session: SelectionSession, console: StatusConsole,
                   paths, checked: bool) -> None:
    for path in paths:
        if not session.toggle_node(path, checked):
            console.print_warning(f"Not in tree: {path}")


def _generate_with_progress(session: SelectionSession, console: StatusConsole,
                            pre_prompt: str) -> str:
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console.console,
        transient=True,
    ) as progress:
        task = progress.add_task("Reading files", total=None)

        def on_progress(completed: int, total: int) -> None:
            progress.update(task, completed=completed, total=total)

        session.generator.progress_callback = on_progress
        try:
            return session.generate_output(pre_prompt)
        finally:
            session.generator.progress_callback = None


@click.command()
@click.argument('path', type=click.Path(exists=True, file_okay=False), required=True)
@click.option('--no-preset', is_flag=True, help='Disable the web project exclusion preset')
@click.option('--exclude', '-x', multiple=True, help='Extra exclusion pattern (repeatable)')
@click.option('--skip-ext', multiple=True, help='Deselect every file with this extension (repeatable)')
@click.option('--deselect', multiple=True, help='Deselect a file or folder, relative to PATH (repeatable)')
@click.option('--select', 'select_paths', multiple=True,
              help='Select a file or folder, relative to PATH (repeatable)')
@click.option('--prompt', '-p', default='', help='Text placed before the generated output')
@click.option('--prompt-file', type=click.Path(exists=True, dir_okay=False),
              help='Read the pre-prompt from a file')
@click.option('--model', '-m', type=click.Choice([m.value for m in LlmModel]),
              help='Model family for the token estimate (default: REPO2PROMPT_MODEL or gpt-4o)')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write output to a file instead of stdout')
@click.option('--no-tokens', is_flag=True, help='Disable token counting')
@click.option('--list-extensions', is_flag=True, help='List detected file extensions and exit')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.version_option(__version__, prog_name='repo2prompt')
def main(path: str, no_preset: bool, exclude, skip_ext, deselect, select_paths,
         prompt: str, prompt_file: str, model: str, output: str, no_tokens: bool,
         list_extensions: bool, debug: bool) -> None:
    """
    Concatenate the selected files of a folder into one LLM prompt.

    PATH is the folder to load. Files matching the exclusion preset start
    deselected; adjust the selection with --skip-ext, --deselect and
    --select.

    Examples:

        repo2prompt . > prompt.txt

        repo2prompt ./webapp --skip-ext md --deselect tests -p "Review this code"

        repo2prompt ./service --no-preset -x "*.csv" -o context.txt --model claude-sonnet
    """
    console = StatusConsole()

    setup_logging(debug)

    try:
        config = Config(use_preset=not no_preset, extra_exclusions=list(exclude))
        session = SelectionSession(config)

        console.print(f"[highlight]> LOADING:[/highlight] [path]{escape(path)}[/path]")
        tree = session.select_folder(path)

        if list_extensions:
            for _, display_name in tree.extension_filters():
                click.echo(display_name)
            return

        for extension in skip_ext:
            changed = session.toggle_extension_filter(extension, False)
            logger.debug(f"--skip-ext {extension}: {changed} files")
        _apply_toggles(session, console, deselect, False)
        _apply_toggles(session, console, select_paths, True)

        if prompt_file:
            with open(prompt_file, 'r', encoding='utf-8') as f:
                prompt = f.read()

        text = _generate_with_progress(session, console, prompt)
        result = session.last_result

        if output:
            session.save_output(output)
            console.print_success(f"Wrote {result.file_count} files to {output}")
        else:
            click.echo(text, nl=False)
            console.print_success(f"Included {result.file_count} files")

        if tree.errors:
            console.print_warning(f"{len(tree.errors)} entries could not be listed")
            if debug:
                for error in tree.errors[:5]:
                    console.print(f"  [dim]>[/dim] {escape(error)}")
        if result.has_errors():
            console.print_warning(f"{len(result.errors)} files could not be read")

        if not no_tokens:
            estimate = session.estimate_tokens(model=model)
            console.print_info(format_estimate(estimate))

    except InvalidRootError as e:
        console.print_error(str(e))
        sys.exit(1)

    except KeyboardInterrupt:
        console.print_error("Process terminated by user")
        sys.exit(1)

    except Exception as e:
        console.print_error(f"Critical error: {str(e)}")
        if debug:
            console.print_exception()
        sys.exit(1)


if __name__ == '__main__':
    main()

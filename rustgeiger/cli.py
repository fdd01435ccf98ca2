"""rustgeiger CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

import click
from rich.table import Table

from rustgeiger import __version__
from rustgeiger.pipeline.ui import console


class VerboseGroup(click.Group):
    """Help output that lists commands in a Rich table."""

    COMMAND_HINTS = {
        "scan": "Risk table of unsafe usage per package",
        "ffi": "JSON list of extern definitions and call sites",
    }

    def format_commands(self, ctx, formatter):
        """Suppress default command listing (rendered in format_help)."""
        pass

    def format_help(self, ctx, formatter):
        super().format_help(ctx, formatter)

        table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
        table.add_column("Command", style="cmd", width=10)
        table.add_column("Description", style="white")
        table.add_column("Gives", style="dim")

        for name, cmd in sorted(self.commands.items()):
            if getattr(cmd, "hidden", False):
                continue
            first_line = (cmd.help or "").split("\n")[0].strip()
            table.add_row(name, first_line, self.COMMAND_HINTS.get(name, ""))

        console.print()
        console.rule("[bold]COMMANDS[/bold]")
        console.print(table)
        console.print("For detailed options: [cmd]rgeiger <command> --help[/cmd]")


@click.group(cls=VerboseGroup)
@click.version_option(version=__version__, prog_name="rgeiger")
@click.help_option("-h", "--help")
def cli():
    """rustgeiger - unsafe and FFI usage auditor for Rust dependency graphs.

    \b
    QUICK START:
      rgeiger scan                  # Risk table for the crate in the current directory
      rgeiger ffi -p mycrate        # extern definitions and call sites as JSON
    """
    pass


from rustgeiger.commands.ffi import ffi
from rustgeiger.commands.scan import scan

cli.add_command(scan)
cli.add_command(ffi)


def main():
    cli()


if __name__ == "__main__":
    main()

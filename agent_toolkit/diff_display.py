"""
Diff display — colored unified diffs and an interactive approval step.

Includes a Textual-based diff viewer that pauses before an edit is written
so the user can approve or reject it.
"""

from __future__ import annotations

import logging
import sys

logger = logging.getLogger(__name__)


def format_colored_diff(diff_text: str) -> str:
    """Add ANSI colors to a unified diff string.

    Green for additions (+), red for deletions (-), cyan for @@ hunks.
    """
    lines = diff_text.splitlines()
    colored: list[str] = []
    for line in lines:
        if line.startswith("+++") or line.startswith("---"):
            colored.append(f"\033[1m{line}\033[0m")  # bold
        elif line.startswith("@@"):
            colored.append(f"\033[36m{line}\033[0m")  # cyan
        elif line.startswith("+"):
            colored.append(f"\033[32m{line}\033[0m")  # green
        elif line.startswith("-"):
            colored.append(f"\033[31m{line}\033[0m")  # red
        else:
            colored.append(line)
    return "\n".join(colored)


def format_rich_diff(diff_text: str) -> str:
    """Convert unified diff text to Rich markup for Textual display."""
    lines = diff_text.splitlines()
    markup_lines: list[str] = []
    for line in lines:
        # Escape Rich markup characters in the line content
        escaped = line.replace("[", "\\[")
        if line.startswith("+++") or line.startswith("---"):
            markup_lines.append(f"[bold white]{escaped}[/bold white]")
        elif line.startswith("@@"):
            markup_lines.append(f"[cyan]{escaped}[/cyan]")
        elif line.startswith("+"):
            markup_lines.append(f"[green]{escaped}[/green]")
        elif line.startswith("-"):
            markup_lines.append(f"[red]{escaped}[/red]")
        else:
            markup_lines.append(escaped)
    return "\n".join(markup_lines)


def prompt_edit_approval(path: str, diff_text: str, auto: bool = False) -> bool:
    """Show a pending edit's diff and wait for approval.

    Returns ``True`` if the user approves (or in auto mode), ``False`` if
    the user rejects.
    """
    if auto:
        logger.info("[auto] Diff for %s:\n%s", path, diff_text)
        return True

    if not sys.stdin.isatty():
        return _console_diff_approval(path, diff_text)

    try:
        return _textual_diff_approval(path, diff_text)
    except Exception as e:
        logger.warning("Textual diff viewer failed: %s", e)

    return _console_diff_approval(path, diff_text)


def _textual_diff_approval(path: str, diff_text: str) -> bool:
    """Launch a Textual app to display the diff and get approval."""
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Horizontal, VerticalScroll
    from textual.widgets import Button, Footer, Static

    class DiffApprovalApp(App):
        """Interactive diff viewer with approve/reject."""

        CSS = """
        Screen {
            background: $surface;
        }
        #title-bar {
            dock: top;
            height: 3;
            background: #1a1a2e;
            color: #e94560;
            text-align: center;
            padding: 1;
            text-style: bold;
        }
        #diff-scroll {
            height: 1fr;
            margin: 1 2;
            border: round #444;
            padding: 1;
        }
        #action-buttons {
            dock: bottom;
            height: 3;
            align: center middle;
            padding: 0 2;
        }
        #action-buttons Button {
            margin: 0 2;
            min-width: 20;
        }
        """

        BINDINGS = [
            Binding("a", "approve", "Approve"),
            Binding("ctrl+s", "approve", "Approve"),
            Binding("escape", "reject", "Reject"),
            Binding("r", "reject", "Reject"),
        ]

        def __init__(self, path: str, diff_text: str) -> None:
            super().__init__()
            self._path = path
            self._diff_text = diff_text
            self.approved: bool = False

        def compose(self) -> ComposeResult:
            yield Static(f" ━━  Review edit — {self._path}  ━━ ", id="title-bar")
            with VerticalScroll(id="diff-scroll"):
                yield Static(format_rich_diff(self._diff_text))
            with Horizontal(id="action-buttons"):
                yield Button("✔ Approve", id="approve-btn", variant="success")
                yield Button("✕ Reject", id="reject-btn", variant="error")
            yield Footer()

        def on_button_pressed(self, event: Button.Pressed) -> None:
            self.approved = event.button.id == "approve-btn"
            self.exit()

        def action_approve(self) -> None:
            self.approved = True
            self.exit()

        def action_reject(self) -> None:
            self.approved = False
            self.exit()

    app = DiffApprovalApp(path, diff_text)
    app.run()
    return app.approved


def _console_diff_approval(path: str, diff_text: str) -> bool:
    """Console-based approval when no interactive terminal is attached."""
    print("\n" + "=" * 60)
    print(f"  REVIEW EDIT: {path}")
    print("=" * 60)
    print(format_colored_diff(diff_text))
    print("\n" + "=" * 60)
    print("  [A]pprove  |  [R]eject")
    print()

    while True:
        try:
            choice = input("  Your choice: ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            return False
        if choice in ("a", "approve"):
            return True
        elif choice in ("r", "reject"):
            return False
        else:
            print("  Invalid choice. Use A or R.")

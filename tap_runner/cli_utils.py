"""
CLI Utilities - clig.dev compliant helpers

Funzionalita:
- Exit codes significativi
- Formattazione errori
- Gestione Ctrl+C
"""

import sys
from enum import IntEnum
from typing import Optional


# ═══════════════════════════════════════════════════════════════════════════════
# EXIT CODES (clig.dev compliant)
# ═══════════════════════════════════════════════════════════════════════════════

class ExitCode(IntEnum):
    """
    Exit codes standardizzati.

    0 = success
    1 = general error
    2 = misuse (bad args)
    64-78 = BSD sysexits.h
    """
    SUCCESS = 0
    ERROR = 1
    MISUSE = 2          # Bad command line args

    USAGE_ERROR = 64    # Command line usage error
    SOFTWARE = 70       # Internal software error
    CONFIG = 78         # Configuration error

    CANCELLED = 130     # Ctrl+C (128 + SIGINT)


def exit_with_code(code: ExitCode, message: Optional[str] = None) -> None:
    """Esce con codice e messaggio opzionale."""
    if message:
        stream = sys.stderr if code != ExitCode.SUCCESS else sys.stdout
        print(message, file=stream)
    sys.exit(code)


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR FORMATTING
# ═══════════════════════════════════════════════════════════════════════════════

def format_error(message: str, suggestion: Optional[str] = None,
                 code: Optional[ExitCode] = None) -> str:
    """
    Formatta messaggio errore user-friendly.

    Args:
        message: Messaggio errore principale
        suggestion: Suggerimento per risolvere
        code: Exit code per riferimento
    """
    lines = [f"Error: {message}"]

    if suggestion:
        lines.append(f"Hint: {suggestion}")

    if code:
        lines.append(f"(exit code: {int(code)})")

    return "\n".join(lines)


def handle_keyboard_interrupt() -> None:
    """Gestisce Ctrl+C in modo pulito."""
    print("\n\nInterrupted (Ctrl+C)")
    sys.exit(ExitCode.CANCELLED)

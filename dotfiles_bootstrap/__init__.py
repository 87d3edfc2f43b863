"""dotfiles-bootstrap: converge a workstation to a declared set of packages and dotfiles.

Core design goals:
- Idempotent: a second run only checks
- Warnings never abort a run; only missing prerequisites do
- Explicit run context instead of globals
- Same flow on Arch (pacman + yay) and macOS (Homebrew)
- Dry runs still query the system; only changes are skipped
"""

__all__ = []

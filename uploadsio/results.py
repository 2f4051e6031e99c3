from typing import Iterable, Tuple

from .schemas import Report, VersionOutcome


def combine(pairs: Iterable[Tuple[str, VersionOutcome]]) -> Report:
    """
    Fold (version, outcome) pairs into one report.  The report is ok only when no
    outcome is an error, and always lists every version.
    """
    versions = dict(pairs)
    return Report(
        ok=all(outcome.ok for outcome in versions.values()),
        versions=versions,
    )

"""
Refactoring engine for lgtrefactor

Provides the argument and parameter rewriting pipeline:
- Tolerant tokenization of raw Logtalk text
- Indicator resolution and location collection
- Per-kind directive rewriting and clause/call rewriting
- Parametric entity rewriting
- Atomic application of multi-file edit sets
"""

__all__ = [
    "RefactoringOrchestrator",
    "RefactoringResult",
    "FileEditTransaction",
    "Add",
    "Remove",
    "Reorder",
    "EditOperation",
    "Indicator",
    "IndicatorKind",
    "RefactoringError",
]


def __getattr__(name: str):
    if name in {"RefactoringOrchestrator", "RefactoringResult"}:
        from .orchestrator import RefactoringOrchestrator, RefactoringResult

        return {
            "RefactoringOrchestrator": RefactoringOrchestrator,
            "RefactoringResult": RefactoringResult,
        }[name]

    if name == "FileEditTransaction":
        from .executor import FileEditTransaction

        return FileEditTransaction

    if name in {"Add", "Remove", "Reorder", "EditOperation"}:
        from .operations import Add, EditOperation, Remove, Reorder

        return {
            "Add": Add,
            "Remove": Remove,
            "Reorder": Reorder,
            "EditOperation": EditOperation,
        }[name]

    if name in {"Indicator", "IndicatorKind"}:
        from .indicators import Indicator, IndicatorKind

        return {"Indicator": Indicator, "IndicatorKind": IndicatorKind}[name]

    if name == "RefactoringError":
        from .errors import RefactoringError

        return RefactoringError

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

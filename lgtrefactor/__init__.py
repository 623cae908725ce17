"""
lgtrefactor - Argument and parameter refactoring for Logtalk

Adds, removes and reorders the arguments of Logtalk predicates and
non-terminals, and the parameters of parametric objects and categories,
consistently across declarations, clauses, documentation directives and call
sites of a whole workspace.
"""

__version__ = "0.1.0"

# Only expose version by default - everything else is lazy loaded
__all__ = ["__version__"]


def __getattr__(name):
    """Lazy loading of main API classes to keep the CLI start-up light."""
    if name in {"RefactoringOrchestrator", "RefactoringResult"}:
        from .refactoring.orchestrator import RefactoringOrchestrator, RefactoringResult

        return {
            "RefactoringOrchestrator": RefactoringOrchestrator,
            "RefactoringResult": RefactoringResult,
        }[name]

    if name in {"LgtRefactorConfig", "load_config"}:
        from .config import LgtRefactorConfig, load_config

        return {
            "LgtRefactorConfig": LgtRefactorConfig,
            "load_config": load_config,
        }[name]

    if name in {"Add", "Remove", "Reorder"}:
        from .refactoring.operations import Add, Remove, Reorder

        return {"Add": Add, "Remove": Remove, "Reorder": Reorder}[name]

    if name == "WorkspaceIndex":
        from .index import WorkspaceIndex

        return WorkspaceIndex

    if name == "DocumentStore":
        from .documents import DocumentStore

        return DocumentStore

    if name == "FileEditTransaction":
        from .refactoring.executor import FileEditTransaction

        return FileEditTransaction

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

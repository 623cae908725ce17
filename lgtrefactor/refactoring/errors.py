"""
Exceptions raised by the refactoring engine.

Every failure class is terminal for the current invocation: the orchestrator
catches RefactoringError, reports one message, and leaves all files untouched.
"""


class RefactoringError(Exception):
    """Base class for refactoring failures."""

    pass


class UnresolvedIndicator(RefactoringError):
    """No predicate or non-terminal indicator could be recognized."""

    pass


class TypeDeterminationFailed(RefactoringError):
    """The declaration lookup failed while deciding predicate vs non-terminal."""

    pass


class UnresolvedEntity(RefactoringError):
    """No parametric object or category could be found for the request."""

    pass


class InvalidEditOperation(RefactoringError):
    """The requested add/remove/reorder does not fit the current arity."""

    pass


class NoLocationsFound(RefactoringError):
    """Neither a declaration nor any clause or call was found."""

    pass


class OperationCancelled(RefactoringError):
    """The caller cancelled the operation before edits were computed."""

    pass


class TransactionFailed(RefactoringError):
    """The edit transaction reported failure after edits were computed."""

    pass

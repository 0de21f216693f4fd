"""Contract of the authorization backend client.

The orchestrator depends on this interface only. Implementations own the
transport to the remote authorization API and translate its failures into
`rbac_orchestrator.exceptions` once, at this boundary.
"""

import abc
from collections.abc import Iterator
from types import TracebackType
from typing import Self

from rbac_orchestrator.models import RoleAssignment


class AuthorizationBackend(abc.ABC):
    """Base class for all authorization backends.

    The lifecycle belongs to the caller: build one, hand it to the
    orchestrator, close it when done (or use it as a context manager).
    """

    @abc.abstractmethod
    def list_assignments(
        self, scope: str, principal_id: str | None = None
    ) -> Iterator[RoleAssignment]:
        """Stream the role assignments visible at `scope`.

        Args:
            scope (str): The scope to query.
            principal_id (str | None): Server-side filter on the principal. It
                may be coarser than the full logical key.

        Raises:
            BackendError: A classified backend failure, raised while iterating.

        """

    @abc.abstractmethod
    def create_assignment(
        self, scope: str, assignment_id: str, assignment: RoleAssignment
    ) -> RoleAssignment:
        """Create the role assignment record named `assignment_id` at `scope`."""

    @abc.abstractmethod
    def delete_assignment(self, scope: str, assignment_id: str) -> None:
        """Delete the role assignment record named `assignment_id` at `scope`.

        Raises:
            NotFoundError: If no such record exists.

        """

    def close(self) -> None:
        """Release the resources held by the backend."""

    def __enter__(self) -> Self:
        """Use the backend as a context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the backend when leaving the context."""
        self.close()

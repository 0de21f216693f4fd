# pragma: no cover  # do not test coverage of tests...
"""Provide fixtures for pytest."""

import json
import threading
from collections import defaultdict
from collections.abc import Callable, Iterator
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import HttpResponseError
from rbac_orchestrator.backend import AuthorizationBackend
from rbac_orchestrator.exceptions import AssignmentExistsError, NotFoundError
from rbac_orchestrator.models import RoleAssignment
from rbac_orchestrator.settings import OrchestratorSettings
from rbac_orchestrator.transport import PropagationTolerantTransport


def _is_same_or_ancestor(candidate: str, scope: str) -> bool:
    candidate = candidate.rstrip("/").lower()
    scope = scope.rstrip("/").lower()
    return scope == candidate or scope.startswith(candidate + "/")


class FakeAuthorizationBackend(AuthorizationBackend):
    """In-memory authorization backend recording every call.

    Failures are queued per operation: each call pops the next one, if any,
    and raises it instead of doing its job.
    """

    def __init__(self) -> None:
        self.assignments: dict[str, RoleAssignment] = {}
        self.failures: dict[str, list[Exception]] = defaultdict(list)
        self.calls: dict[str, list[tuple[str, ...]]] = defaultdict(list)
        self.history: list[str] = []
        self.before_create: Callable[[], None] | None = None
        self.closed = False
        self._lock = threading.Lock()

    def _record(self, operation: str, *args: str) -> None:
        with self._lock:
            self.calls[operation].append(args)
            self.history.append(operation)
            if self.failures[operation]:
                raise self.failures[operation].pop(0)

    def count(self, operation: str) -> int:
        return len(self.calls[operation])

    def add(self, scope: str, role: str, principal: str, assignment_id: str) -> RoleAssignment:
        assignment = RoleAssignment(
            scope=scope,
            role_definition_id=role,
            principal_id=principal,
            assignment_id=assignment_id,
        )
        self.assignments[assignment_id] = assignment
        return assignment

    def list_assignments(
        self, scope: str, principal_id: str | None = None
    ) -> Iterator[RoleAssignment]:
        self._record("list", scope, principal_id or "")
        with self._lock:
            snapshot = list(self.assignments.values())
        for assignment in snapshot:
            if not _is_same_or_ancestor(assignment.scope, scope):
                continue
            if principal_id and assignment.principal_id != principal_id:
                continue
            yield assignment

    def create_assignment(
        self, scope: str, assignment_id: str, assignment: RoleAssignment
    ) -> RoleAssignment:
        if self.before_create is not None:
            self.before_create()
        self._record("create", scope, assignment_id)
        with self._lock:
            if assignment_id in self.assignments:
                raise AssignmentExistsError(
                    f"Role assignment {assignment_id} already exists", 409, "RoleAssignmentExists"
                )
            created = assignment.model_copy(update={"assignment_id": assignment_id})
            self.assignments[assignment_id] = created
        return created

    def delete_assignment(self, scope: str, assignment_id: str) -> None:
        self._record("delete", scope, assignment_id)
        with self._lock:
            if assignment_id not in self.assignments:
                raise NotFoundError(f"Role assignment {assignment_id} not found", 404)
            del self.assignments[assignment_id]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_backend() -> FakeAuthorizationBackend:
    """Fixture to create an empty fake authorization backend."""
    return FakeAuthorizationBackend()


@pytest.fixture
def fast_transport() -> PropagationTolerantTransport:
    """Fixture to create a transport with the default attempts and no delay."""
    return PropagationTolerantTransport(attempts=15, delay=timedelta(0))


@pytest.fixture
def fast_settings(monkeypatch: pytest.MonkeyPatch) -> OrchestratorSettings:
    """Fixture to create settings with millisecond waits, ignoring local config files."""
    monkeypatch.setitem(OrchestratorSettings.model_config, "yaml_file", "")
    monkeypatch.setitem(OrchestratorSettings.model_config, "env_file", "")
    return OrchestratorSettings(
        subscription_id="sub",
        retry_attempts=15,
        retry_delay=timedelta(0),
        principal_poll_interval=timedelta(milliseconds=1),
        principal_grace_period=timedelta(0),
        propagation_poll_interval=timedelta(milliseconds=1),
        propagation_grace_period=timedelta(0),
    )


@pytest.fixture(name="http_error")
def fixture_http_error() -> Callable[..., HttpResponseError]:
    """Factory fixture to create an ARM HttpResponseError with a status and an error code."""

    def _factory(status_code: int, code: str | None = None) -> HttpResponseError:
        response = MagicMock()
        response.status_code = status_code
        response.reason = "Reason"
        body = {"error": {"code": code, "message": f"{code} message"}} if code else {}
        response.text.return_value = json.dumps(body)
        return HttpResponseError(response=response)

    return _factory

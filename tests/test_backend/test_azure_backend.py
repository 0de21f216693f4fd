from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from rbac_orchestrator.backend import AzureAuthorizationBackend
from rbac_orchestrator.exceptions import ForbiddenError, PrincipalNotFoundError
from rbac_orchestrator.models import PrincipalType, RoleAssignment

SCOPE = "/subscriptions/sub/resourceGroups/rg"
ROLE = "/subscriptions/sub/providers/Microsoft.Authorization/roleDefinitions/role-x"


def sdk_assignment(**overrides):
    values = {
        "name": "a1",
        "scope": SCOPE,
        "role_definition_id": ROLE,
        "principal_id": "principal-1",
        "principal_type": "ServicePrincipal",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def mock_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def backend(mock_client) -> AzureAuthorizationBackend:
    return AzureAuthorizationBackend("sub", client=mock_client)


def test_list_assignments_filters_on_principal(backend, mock_client):
    """Test that listing uses the assignedTo() server-side filter and converts records."""
    mock_client.role_assignments.list_for_scope.return_value = iter([sdk_assignment()])

    assignments = list(backend.list_assignments(SCOPE, "principal-1"))

    mock_client.role_assignments.list_for_scope.assert_called_once_with(
        SCOPE, filter="assignedTo('principal-1')"
    )
    assert assignments == [
        RoleAssignment(
            scope=SCOPE,
            role_definition_id=ROLE,
            principal_id="principal-1",
            principal_type=PrincipalType.SERVICE_PRINCIPAL,
            assignment_id="a1",
        )
    ]


def test_list_assignments_without_principal_has_no_filter(backend, mock_client):
    """Test that listing without a principal does not filter."""
    mock_client.role_assignments.list_for_scope.return_value = iter([])

    assert list(backend.list_assignments(SCOPE)) == []
    mock_client.role_assignments.list_for_scope.assert_called_once_with(SCOPE, filter=None)


def test_list_assignments_skips_incomplete_records(backend, mock_client):
    """Test that records without principal or role definition are ignored."""
    mock_client.role_assignments.list_for_scope.return_value = iter(
        [
            sdk_assignment(principal_id=None),
            sdk_assignment(role_definition_id=None),
            sdk_assignment(name="a2", principal_type="Unknown", scope=None),
        ]
    )

    assignments = list(backend.list_assignments(SCOPE, "principal-1"))

    assert [a.assignment_id for a in assignments] == ["a2"]
    assert assignments[0].principal_type is None
    assert assignments[0].scope == SCOPE


def test_list_assignments_translates_errors_raised_while_paging(backend, mock_client, http_error):
    """Test that errors raised by the pager are classified."""

    def pages():
        yield sdk_assignment()
        raise http_error(400, "PrincipalNotFound")

    mock_client.role_assignments.list_for_scope.return_value = pages()

    with pytest.raises(PrincipalNotFoundError):
        list(backend.list_assignments(SCOPE, "principal-1"))


def test_create_assignment_sends_principal_type(backend, mock_client):
    """Test that the principal type hint is attached to the create parameters."""
    mock_client.role_assignments.create.return_value = sdk_assignment(name="new-id")
    assignment = RoleAssignment(
        scope=SCOPE,
        role_definition_id=ROLE,
        principal_id="principal-1",
        principal_type=PrincipalType.SERVICE_PRINCIPAL,
    )

    created = backend.create_assignment(SCOPE, "new-id", assignment)

    scope, name, parameters = mock_client.role_assignments.create.call_args.args
    assert (scope, name) == (SCOPE, "new-id")
    assert parameters.role_definition_id == ROLE
    assert parameters.principal_id == "principal-1"
    assert parameters.principal_type == "ServicePrincipal"
    assert created.assignment_id == "new-id"


def test_create_assignment_translates_errors(backend, mock_client, http_error):
    """Test that a 403 on create surfaces as ForbiddenError."""
    mock_client.role_assignments.create.side_effect = http_error(403, "AuthorizationFailed")
    assignment = RoleAssignment(scope=SCOPE, role_definition_id=ROLE, principal_id="principal-1")

    with pytest.raises(ForbiddenError):
        backend.create_assignment(SCOPE, "new-id", assignment)


@pytest.mark.parametrize("response", [None, sdk_assignment()])
def test_delete_assignment(backend, mock_client, response):
    """Test that deleting calls the SDK, whether or not the record still existed."""
    mock_client.role_assignments.delete.return_value = response

    backend.delete_assignment(SCOPE, "a1")

    mock_client.role_assignments.delete.assert_called_once_with(SCOPE, "a1")


def test_close_with_injected_client_closes_client_only(backend, mock_client):
    """Test that closing does not touch credentials the backend did not create."""
    backend.close()

    mock_client.close.assert_called_once_with()


def test_default_credential_is_created_and_closed(mocker):
    """Test that the backend builds and owns a DefaultAzureCredential when none is given."""
    credential_cls = mocker.patch("rbac_orchestrator.backend.azure.DefaultAzureCredential")
    client_cls = mocker.patch("rbac_orchestrator.backend.azure.AuthorizationManagementClient")

    with AzureAuthorizationBackend("sub", retry_policy="policy") as backend:
        assert backend.subscription_id == "sub"

    client_cls.assert_called_once_with(credential_cls.return_value, "sub", retry_policy="policy")
    client_cls.return_value.close.assert_called_once_with()
    credential_cls.return_value.close.assert_called_once_with()


def test_injected_credential_is_not_closed(mocker):
    """Test that a caller-provided credential stays open."""
    client_cls = mocker.patch("rbac_orchestrator.backend.azure.AuthorizationManagementClient")
    credential = MagicMock()

    AzureAuthorizationBackend("sub", credential=credential).close()

    client_cls.assert_called_once_with(credential, "sub")
    credential.close.assert_not_called()

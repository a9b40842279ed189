"""
Unit tests for the task service.

Calls ``testflow.services.tasks`` directly to check role enforcement,
task numbering, ``closed_at`` stamping and list filtering without going
through HTTP.
"""

from __future__ import annotations

import pytest

from testflow.errors import Forbidden, NotFound, ValidationError
from testflow.models import Role, TaskStatus, TaskUrgency
from testflow.services import tasks as task_service
from testflow.services.tasks import TaskFilters

pytestmark = pytest.mark.unit


class TestCreateTask:
    """Tests for task_service.create_task."""

    def test_create_task_starts_new_with_defaults(self, developer_user):
        """Test that a fresh task is new, medium urgency and owned by the caller."""
        # Act
        task = task_service.create_task(developer_user.id, Role.DEVELOPER, {"title": "Login page"})

        # Assert
        assert task.status == TaskStatus.NEW.value
        assert task.urgency == TaskUrgency.MEDIUM.value
        assert task.assigned_by == developer_user.id
        assert task.tester_id is None
        assert task.closed_at is None

    def test_create_task_numbers_are_distinct_and_increasing(self, manager_user):
        """Test that consecutive tasks get strictly increasing numbers."""
        numbers = [
            task_service.create_task(manager_user.id, Role.MANAGER, {"title": f"Task {i}"}).task_number
            for i in range(4)
        ]

        assert numbers == sorted(numbers)
        assert len(set(numbers)) == len(numbers)

    def test_admin_cannot_create_task(self, admin_user):
        """Test that administrators are refused with a readable reason."""
        with pytest.raises(Forbidden) as exc_info:
            task_service.create_task(admin_user.id, Role.ADMIN, {"title": "Nope"})

        assert exc_info.value.message == "Administrators cannot create tasks"

    def test_create_task_rejects_unknown_tester(self, developer_user):
        """Test that a dangling tester_id is a validation error."""
        with pytest.raises(ValidationError):
            task_service.create_task(
                developer_user.id,
                Role.DEVELOPER,
                {"title": "Orphan", "tester_id": "00000000-0000-0000-0000-000000000000"},
            )

    def test_create_task_for_missing_actor_raises_not_found(self, db_session):
        """Test that a token for a deleted user cannot open tasks."""
        with pytest.raises(NotFound):
            task_service.create_task("missing-user", Role.DEVELOPER, {"title": "Ghost"})


class TestUpdateTask:
    """Tests for task_service.update_task."""

    def test_update_is_partial(self, developer_user, tester_user, task_factory):
        """Test that only supplied fields change."""
        task = task_factory(creator=developer_user, title="Original", urgency="low")

        updated = task_service.update_task(
            developer_user.id, Role.DEVELOPER, task.id, {"tester_id": tester_user.id}
        )

        assert updated.tester_id == tester_user.id
        assert updated.title == "Original"
        assert updated.urgency == "low"

    def test_closing_stamps_closed_at_once(self, manager_user, task_factory):
        """Test that closed_at is set on first close and survives later updates."""
        # Arrange
        task = task_factory(creator=manager_user)

        # Act
        closed = task_service.update_task(manager_user.id, Role.MANAGER, task.id, {"status": "closed"})
        first_stamp = closed.closed_at
        task_service.update_task(manager_user.id, Role.MANAGER, task.id, {"comment": "after close"})
        reopened = task_service.update_task(manager_user.id, Role.MANAGER, task.id, {"status": "new"})
        reopened_status, reopened_stamp = reopened.status, reopened.closed_at
        reclosed = task_service.update_task(manager_user.id, Role.MANAGER, task.id, {"status": "closed"})

        # Assert
        assert first_stamp is not None
        assert reopened_status == "new"
        assert reopened_stamp == first_stamp
        assert reclosed.closed_at == first_stamp

    def test_non_closed_status_leaves_closed_at_empty(self, developer_user, task_factory):
        """Test that moving to done does not stamp closed_at."""
        task = task_factory(creator=developer_user)

        updated = task_service.update_task(developer_user.id, Role.DEVELOPER, task.id, {"status": "done"})

        assert updated.closed_at is None

    def test_admin_cannot_update_task(self, admin_user, developer_user, task_factory):
        """Test that admins are refused regardless of the payload."""
        task = task_factory(creator=developer_user)

        with pytest.raises(Forbidden, match="Administrators cannot edit tasks"):
            task_service.update_task(admin_user.id, Role.ADMIN, task.id, {"title": "x"})

    def test_update_missing_task_raises_not_found(self, manager_user):
        with pytest.raises(NotFound, match="Task not found"):
            task_service.update_task(manager_user.id, Role.MANAGER, "missing", {"title": "x"})

    def test_update_rejects_unknown_tester(self, developer_user, task_factory):
        task = task_factory(creator=developer_user)

        with pytest.raises(ValidationError):
            task_service.update_task(
                developer_user.id, Role.DEVELOPER, task.id, {"tester_id": "not-a-user"}
            )

    def test_update_allows_clearing_tester(self, developer_user, tester_user, task_factory):
        """Test that tester_id may be set back to null."""
        task = task_factory(creator=developer_user, tester=tester_user)

        updated = task_service.update_task(developer_user.id, Role.DEVELOPER, task.id, {"tester_id": None})

        assert updated.tester_id is None

    def test_tester_may_update_any_task_by_default(self, tester_user, developer_user, task_factory):
        task = task_factory(creator=developer_user)

        updated = task_service.update_task(tester_user.id, Role.TESTER, task.id, {"status": "testing"})

        assert updated.status == "testing"

    @pytest.mark.usefixtures("restrict_tester_updates")
    def test_restricted_tester_limited_to_own_tasks(
        self, tester_user, developer_user, user_factory, task_factory
    ):
        """Test that the restriction admits assigned or created tasks only."""
        other_tester = user_factory(role=Role.TESTER)
        assigned = task_factory(creator=developer_user, tester=tester_user)
        unrelated = task_factory(creator=developer_user, tester=other_tester)

        updated = task_service.update_task(tester_user.id, Role.TESTER, assigned.id, {"status": "testing"})
        with pytest.raises(Forbidden):
            task_service.update_task(tester_user.id, Role.TESTER, unrelated.id, {"status": "testing"})

        assert updated.status == "testing"


class TestDeleteTask:
    """Tests for task_service.delete_task."""

    def test_creator_can_delete(self, developer_user, task_factory):
        task_id = task_factory(creator=developer_user).id

        task_service.delete_task(developer_user.id, Role.DEVELOPER, task_id)

        with pytest.raises(NotFound):
            task_service.get_task(task_id)

    def test_manager_can_delete_others_task(self, manager_user, developer_user, task_factory):
        task_id = task_factory(creator=developer_user).id

        task_service.delete_task(manager_user.id, Role.MANAGER, task_id)

        with pytest.raises(NotFound):
            task_service.get_task(task_id)

    @pytest.mark.parametrize("role", [Role.DEVELOPER, Role.TESTER])
    def test_non_creator_cannot_delete(self, user_factory, developer_user, task_factory, role):
        """Test that developers and testers cannot delete someone else's task."""
        task = task_factory(creator=developer_user)
        other = user_factory(role=role)

        with pytest.raises(Forbidden, match="Only the task creator or a manager"):
            task_service.delete_task(other.id, role, task.id)

        assert task_service.get_task(task.id).id == task.id

    def test_admin_cannot_delete_task(self, admin_user, developer_user, task_factory):
        """Test that admins are refused with their own reason."""
        task = task_factory(creator=developer_user)

        with pytest.raises(Forbidden, match="Administrators cannot manage tasks"):
            task_service.delete_task(admin_user.id, Role.ADMIN, task.id)


class TestListTasks:
    """Tests for task_service.list_tasks."""

    def test_filters_are_conjunctive(self, developer_user, tester_user, task_factory):
        """Test that status and tester filters must both match."""
        # Arrange
        match = task_factory(creator=developer_user, tester=tester_user, status="testing")
        task_factory(creator=developer_user, tester=tester_user, status="new")
        task_factory(creator=developer_user, status="testing")

        # Act
        tasks, total = task_service.list_tasks(
            TaskFilters(status="testing", tester_id=tester_user.id), page=1, per_page=20
        )

        # Assert
        assert total == 1
        assert [t.id for t in tasks] == [match.id]

    def test_filter_by_creator_and_urgency(self, developer_user, manager_user, task_factory):
        task_factory(creator=developer_user, urgency="critical")
        task_factory(creator=manager_user, urgency="critical")
        task_factory(creator=developer_user, urgency="low")

        tasks, total = task_service.list_tasks(
            TaskFilters(urgency="critical", assigned_by=developer_user.id), page=1, per_page=20
        )

        assert total == 1
        assert tasks[0].assigned_by == developer_user.id

    def test_pagination_reports_full_total(self, developer_user, task_factory):
        """Test that total counts every match while the page is bounded."""
        for _ in range(5):
            task_factory(creator=developer_user)

        first_page, total = task_service.list_tasks(TaskFilters(), page=1, per_page=2)
        last_page, _ = task_service.list_tasks(TaskFilters(), page=3, per_page=2)

        assert total == 5
        assert len(first_page) == 2
        assert len(last_page) == 1

    def test_newest_first(self, developer_user, task_factory):
        older = task_factory(creator=developer_user)
        newer = task_factory(creator=developer_user)

        tasks, _ = task_service.list_tasks(TaskFilters(), page=1, per_page=20)

        assert [t.id for t in tasks] == [newer.id, older.id]

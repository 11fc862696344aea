from datetime import date, time

import pytest

from timetracker.connectors.factory import JiraConnectorFactory
from timetracker.constants.ticket_system_type import TicketSystemType
from timetracker.exceptions import JiraApiError, JiraApiInvalidResourceError, JiraApiUnauthorizedError
from timetracker.schemas.entry import EntrySnapshot
from timetracker.schemas.jira import JiraIssue
from timetracker.services.worklog_reconciler import WorklogReconciler, jql_string


def call_names(connector):
    return [call[0] for call in connector.mock_calls if call[0] != "aclose"]


@pytest.fixture
def reconciler(repository, connector_factory):
    return WorklogReconciler(repository, connector_factory)


@pytest.fixture
def internal_project(db, project, internal_jira, user):
    project.internal_jira_project_key = "INT"
    project.internal_jira_ticket_system_id = internal_jira.id
    db.commit()
    db.refresh(project)
    return project


def test_should_delete_only_on_genuine_ticket_move(entry_factory, user, plain_project):
    entry = entry_factory(user, plain_project, ticket="ABC-2")
    previous = EntrySnapshot(ticket="ABC-1", internal_ticket_original_key="ABC-1", worklog_id="55")

    assert WorklogReconciler.should_delete_previous_worklog(entry, previous) is True

    entry.internal_ticket_original_key = "ABC-2"
    assert WorklogReconciler.should_delete_previous_worklog(entry, previous) is False

    assert WorklogReconciler.should_delete_previous_worklog(entry, None) is False


@pytest.mark.asyncio
class TestWorklogReconciler:
    @pytest.mark.asyncio
    async def test_creates_worklog_for_new_entry(self, db, reconciler, connector, connector_factory, project, user, entry_factory):
        entry = entry_factory(user, project, ticket="ABC-1", start=time(8, 0), end=time(9, 30))

        await reconciler.reconcile(entry, None)

        connector.create_worklog.assert_awaited_once()
        issue_key, snapshot = connector.create_worklog.await_args.args
        assert issue_key == "ABC-1"
        assert snapshot.duration == 90
        db.refresh(entry)
        assert entry.worklog_id == "1001"
        assert entry.synced_to_ticketsystem is True
        assert connector_factory.created == [(user.id, project.ticket_system_id)]

    @pytest.mark.asyncio
    async def test_ticket_move_deletes_old_worklog_before_create(self, reconciler, connector, project, user, entry_factory):
        entry = entry_factory(user, project, ticket="ABC-2", worklog_id="55")
        previous = EntrySnapshot(ticket="ABC-1", internal_ticket_original_key="ABC-1", worklog_id="55", day=entry.day)

        await reconciler.reconcile(entry, previous)

        assert call_names(connector) == ["delete_worklog", "create_worklog"]
        connector.delete_worklog.assert_awaited_once_with("ABC-1", "55")
        assert connector.create_worklog.await_args.args[0] == "ABC-2"
        assert entry.worklog_id == "1001"

    @pytest.mark.asyncio
    async def test_same_ticket_updates_existing_worklog(self, reconciler, connector, project, user, entry_factory):
        entry = entry_factory(user, project, ticket="ABC-1", worklog_id="55")
        previous = EntrySnapshot.from_entry(entry)

        await reconciler.reconcile(entry, previous)

        assert call_names(connector) == ["update_worklog"]
        assert connector.update_worklog.await_args.args[:2] == ("ABC-1", "55")
        assert entry.worklog_id == "55"

    @pytest.mark.asyncio
    async def test_vanished_worklog_is_recreated(self, reconciler, connector, project, user, entry_factory):
        entry = entry_factory(user, project, ticket="ABC-1", worklog_id="55")
        connector.update_worklog.side_effect = JiraApiInvalidResourceError("404 - Resource is not available")

        await reconciler.reconcile(entry, EntrySnapshot.from_entry(entry))

        assert call_names(connector) == ["update_worklog", "create_worklog"]
        assert entry.worklog_id == "1001"

    @pytest.mark.asyncio
    async def test_zero_duration_deletes_worklog(self, reconciler, connector, project, user, entry_factory):
        entry = entry_factory(user, project, ticket="ABC-1", start=time(9, 0), end=time(9, 0), worklog_id="55")

        await reconciler.reconcile(entry, EntrySnapshot.from_entry(entry))

        assert call_names(connector) == ["delete_worklog"]
        assert entry.worklog_id is None
        assert entry.synced_to_ticketsystem is False

    @pytest.mark.asyncio
    async def test_entry_without_ticket_books_nothing(self, reconciler, connector, project, user, entry_factory):
        entry = entry_factory(user, project, ticket="")

        await reconciler.reconcile(entry, None)

        assert call_names(connector) == []

    @pytest.mark.asyncio
    async def test_ticket_system_without_time_booking_is_skipped(self, db, reconciler, connector_factory, jira, project, user, entry_factory):
        jira.book_time = False
        db.commit()
        entry = entry_factory(user, project, ticket="ABC-1")

        await reconciler.reconcile(entry, None)

        assert connector_factory.created == []

    @pytest.mark.asyncio
    async def test_non_jira_ticket_system_is_skipped(self, db, reconciler, connector_factory, jira, project, user, entry_factory):
        jira.type = TicketSystemType.OTRS
        db.commit()
        entry = entry_factory(user, project, ticket="ABC-1")

        await reconciler.reconcile(entry, None)

        assert connector_factory.created == []

    @pytest.mark.asyncio
    async def test_project_without_ticket_system_is_skipped(self, reconciler, connector_factory, plain_project, user, entry_factory):
        entry = entry_factory(user, plain_project, ticket="ABC-1")

        await reconciler.reconcile(entry, None)

        assert connector_factory.created == []

    @pytest.mark.asyncio
    async def test_avoided_connection_is_skipped(self, repository, connector_factory, project, user, entry_factory):
        connector_factory.avoided = True
        entry = entry_factory(user, project, ticket="ABC-1")

        await WorklogReconciler(repository, connector_factory).reconcile(entry, None)

        assert connector_factory.created == []

    @pytest.mark.asyncio
    async def test_missing_token_requires_authorization(self, repository, project, user, entry_factory):
        entry = entry_factory(user, project, ticket="ABC-1")
        reconciler = WorklogReconciler(repository, JiraConnectorFactory(repository))

        with pytest.raises(JiraApiUnauthorizedError) as exc_info:
            await reconciler.reconcile(entry, None)

        assert exc_info.value.redirect_url == "https://jira.example.com/plugins/servlet/oauth/authorize"

    @pytest.mark.asyncio
    async def test_remote_errors_propagate(self, reconciler, connector, project, user, entry_factory):
        entry = entry_factory(user, project, ticket="ABC-1")
        connector.create_worklog.side_effect = JiraApiError("HTTP 500 error")

        with pytest.raises(JiraApiError):
            await reconciler.reconcile(entry, None)

        connector.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_internal_ticket_system_takes_precedence(self, reconciler, connector_factory, internal_project, internal_jira, user, entry_factory):
        entry = entry_factory(user, internal_project, ticket="INT-3")

        await reconciler.reconcile(entry, None)

        assert connector_factory.created == [(user.id, internal_jira.id)]

    @pytest.mark.asyncio
    async def test_internal_ticket_reuses_search_hit(self, reconciler, connector, internal_project, user, entry_factory):
        entry = entry_factory(user, internal_project, ticket="ABC-7", worklog_id="77")
        previous = EntrySnapshot(ticket="INT-3", internal_ticket_original_key="INT-3", worklog_id="77", day=entry.day)
        connector.search_issues.return_value = [JiraIssue(key="INT-3")]

        await reconciler.reconcile(entry, previous)

        connector.search_issues.assert_awaited_once_with('project = INT AND summary ~ "ABC-7"', ["key", "summary"], 1)
        connector.create_issue.assert_not_awaited()
        assert entry.ticket == "INT-3"
        assert entry.internal_ticket_original_key == "INT-3"
        # Canonical rewrite, not a move
        connector.delete_worklog.assert_not_awaited()
        assert connector.update_worklog.await_args.args[:2] == ("INT-3", "77")

    @pytest.mark.asyncio
    async def test_internal_ticket_is_created_when_missing(self, reconciler, connector, internal_project, user, entry_factory):
        entry = entry_factory(user, internal_project, ticket="ABC-7")
        connector.create_issue.return_value = "INT-9"

        await reconciler.reconcile(entry, None)

        project_key, snapshot, description = connector.create_issue.await_args.args
        assert project_key == "INT"
        assert snapshot.ticket == "ABC-7"
        assert description == "https://jira.example.com/browse/ABC-7"
        assert entry.ticket == "INT-9"
        assert entry.internal_ticket_original_key == "INT-9"
        assert connector.create_worklog.await_args.args[0] == "INT-9"

    @pytest.mark.asyncio
    async def test_internal_key_is_reused_without_search(self, reconciler, connector, internal_project, user, entry_factory):
        entry = entry_factory(user, internal_project, ticket="INT-3", internal_ticket_original_key="INT-3")

        await reconciler.reconcile(entry, EntrySnapshot.from_entry(entry))

        connector.search_issues.assert_not_awaited()
        connector.create_issue.assert_not_awaited()
        assert entry.ticket == "INT-3"

    @pytest.mark.asyncio
    async def test_delete_entry_worklog(self, reconciler, connector, project, user, entry_factory):
        entry = entry_factory(user, project, ticket="ABC-1", worklog_id="55")

        await reconciler.delete_entry_worklog(entry)

        connector.delete_worklog.assert_awaited_once_with("ABC-1", "55")
        assert entry.worklog_id is None

    @pytest.mark.asyncio
    async def test_delete_tolerates_missing_worklog(self, reconciler, connector, project, user, entry_factory):
        entry = entry_factory(user, project, ticket="ABC-1", worklog_id="55")
        connector.delete_worklog.side_effect = JiraApiInvalidResourceError("404 - Resource is not available")

        await reconciler.delete_entry_worklog(entry)

        assert entry.worklog_id is None

    @pytest.mark.asyncio
    async def test_search_hit_outside_internal_project_is_ignored(self, reconciler, connector, internal_project, user, entry_factory):
        entry = entry_factory(user, internal_project, ticket="ABC-7")
        connector.search_issues.return_value = [JiraIssue(key="SECRET-1")]
        connector.create_issue.return_value = "INT-9"

        await reconciler.reconcile(entry, None)

        connector.create_issue.assert_awaited_once()
        assert entry.ticket == "INT-9"
        assert connector.create_worklog.await_args.args[0] == "INT-9"

    @pytest.mark.asyncio
    async def test_search_identifier_is_quoted(self, reconciler, connector, internal_project, user, entry_factory):
        entry = entry_factory(user, internal_project, ticket="ABC-7", internal_ticket_original_key='x" OR project = SECRET')
        connector.create_issue.return_value = "INT-9"

        await reconciler.reconcile(entry, None)

        jql = connector.search_issues.await_args.args[0]
        assert jql == 'project = INT AND summary ~ "x\\" OR project = SECRET"'


def test_jql_string_escapes_quotes_and_backslashes():
    assert jql_string("ABC-1") == "ABC-1"
    assert jql_string('a"b') == 'a\\"b'
    assert jql_string("a\\b") == "a\\\\b"


@pytest.mark.asyncio
class TestResyncPendingWorklogs:
    @pytest.mark.asyncio
    async def test_books_unsynced_entries_newest_first(self, db, reconciler, connector, jira, project, user, other_user, entry_factory):
        older = entry_factory(user, project, day=date(2024, 3, 1), ticket="ABC-1")
        newer = entry_factory(user, project, day=date(2024, 3, 2), ticket="ABC-2")
        entry_factory(user, project, day=date(2024, 3, 3), ticket="ABC-3", worklog_id="5", synced_to_ticketsystem=True)
        entry_factory(user, project, day=date(2024, 3, 4), ticket="")
        entry_factory(other_user, project, day=date(2024, 3, 5), ticket="ABC-4")

        result = await reconciler.resync_pending_worklogs(user.id, jira)

        assert result.synced == [newer.id, older.id]
        assert result.failed == []
        assert [call.args[0] for call in connector.create_worklog.await_args_list] == ["ABC-2", "ABC-1"]
        db.refresh(older)
        assert older.worklog_id == "1001"
        assert older.synced_to_ticketsystem is True
        connector.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_entry_does_not_stop_the_run(self, db, reconciler, connector, jira, project, user, entry_factory):
        older = entry_factory(user, project, day=date(2024, 3, 1), ticket="ABC-1")
        newer = entry_factory(user, project, day=date(2024, 3, 2), ticket="ABC-2")

        def create_worklog(issue_key, entry):
            if issue_key == "ABC-2":
                raise JiraApiError("HTTP 500 error")
            return "1001"

        connector.create_worklog.side_effect = create_worklog

        result = await reconciler.resync_pending_worklogs(user.id, jira)

        assert result.failed == [newer.id]
        assert result.synced == [older.id]
        db.refresh(newer)
        assert newer.synced_to_ticketsystem is False

    @pytest.mark.asyncio
    async def test_limit_takes_newest(self, reconciler, connector, jira, project, user, entry_factory):
        entry_factory(user, project, day=date(2024, 3, 1), ticket="ABC-1")
        newer = entry_factory(user, project, day=date(2024, 3, 2), ticket="ABC-2")

        result = await reconciler.resync_pending_worklogs(user.id, jira, limit=1)

        assert result.synced == [newer.id]
        assert connector.create_worklog.await_count == 1

    @pytest.mark.asyncio
    async def test_unauthorized_stops_the_run(self, reconciler, connector, jira, project, user, entry_factory):
        entry_factory(user, project, day=date(2024, 3, 1), ticket="ABC-1")
        entry_factory(user, project, day=date(2024, 3, 2), ticket="ABC-2")
        connector.create_worklog.side_effect = JiraApiUnauthorizedError("401 - Unauthorized")

        with pytest.raises(JiraApiUnauthorizedError):
            await reconciler.resync_pending_worklogs(user.id, jira)

        assert connector.create_worklog.await_count == 1
        connector.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_avoided_connection_books_nothing(self, reconciler, connector_factory, jira, project, user, entry_factory):
        entry_factory(user, project, ticket="ABC-1")
        connector_factory.avoided = True

        result = await reconciler.resync_pending_worklogs(user.id, jira)

        assert result.synced == []
        assert connector_factory.created == []

    @pytest.mark.asyncio
    async def test_internal_project_resolves_ticket_first(self, reconciler, connector, internal_jira, internal_project, user, entry_factory):
        entry = entry_factory(user, internal_project, ticket="ABC-7")
        connector.create_issue.return_value = "INT-9"

        result = await reconciler.resync_pending_worklogs(user.id, internal_jira)

        assert result.synced == [entry.id]
        assert connector.create_worklog.await_args.args[0] == "INT-9"

    @pytest.mark.asyncio
    async def test_internal_project_is_skipped_on_its_own_ticket_system(self, reconciler, connector, jira, internal_project, user, entry_factory):
        entry = entry_factory(user, internal_project, ticket="ABC-7")

        result = await reconciler.resync_pending_worklogs(user.id, jira)

        assert result.skipped == [entry.id]
        connector.create_worklog.assert_not_awaited()

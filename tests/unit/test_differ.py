"""Tests for the table diff engine."""

import logging

import pytest

from tablesync.differ import (
    IndexUpdate,
    ReplicaUpdate,
    StreamAction,
    build_update_request,
    diff_indexes,
    diff_replicas,
    diff_stream,
    plan_table,
    teardown_replicas,
)
from tablesync.models import (
    DesiredTableConfig,
    KeyElement,
    ObservedTableState,
    Replica,
    SecondaryIndex,
    StreamSpec,
)
from tablesync.observer import Absent, Present
from tests.fixtures.tables import table_description


def _index(name: str) -> SecondaryIndex:
    return SecondaryIndex(index_name=f"idx-{name}", key_schema=(KeyElement("id", "HASH"),))


def _replicas(*regions: str) -> list[Replica]:
    return [Replica(r) for r in regions]


def _config(**overrides) -> DesiredTableConfig:
    raw = {
        "name": "orders",
        "region": "us-east-1",
        "attributeDefinitions": [{"name": "id", "scalarType": "S"}],
        "keySchema": [{"attributeName": "id", "role": "HASH"}],
    }
    raw.update(overrides)
    return DesiredTableConfig.from_dict(raw)


class TestDiffIndexes:
    """Tests for global secondary index diffs."""

    def test_create_and_delete_by_name(self):
        """Previous [a, b] and desired [b, c] creates c and deletes a."""
        update = diff_indexes([_index("a"), _index("b")], [_index("b"), _index("c")])

        assert update.to_dict() == {
            "Create": _index("c").to_dict(),
            "Delete": {"indexName": "idx-a"},
        }
        assert update.deferred_creates == ()
        assert update.deferred_deletes == ()

    def test_identical_sets_are_empty(self):
        """Same index names produce an empty update regardless of order."""
        update = diff_indexes([_index("a"), _index("b")], [_index("b"), _index("a")])

        assert update.is_empty
        assert update.to_api() is None

    def test_only_first_create_is_submitted(self, caplog):
        """Extra creations are deferred, in list order, with a warning."""
        with caplog.at_level(logging.WARNING, logger="tablesync.differ"):
            update = diff_indexes([], [_index("x"), _index("y"), _index("z")])

        assert update.create == _index("x")
        assert update.deferred_creates == ("idx-y", "idx-z")
        assert "idx-y, idx-z" in caplog.text

    def test_only_first_delete_is_submitted(self, caplog):
        """Extra deletions are deferred, in list order, with a warning."""
        with caplog.at_level(logging.WARNING, logger="tablesync.differ"):
            update = diff_indexes([_index("p"), _index("q"), _index("r")], [])

        assert update.delete == "idx-p"
        assert update.deferred_deletes == ("idx-q", "idx-r")
        assert "idx-q, idx-r" in caplog.text

    @pytest.mark.parametrize(
        ("previous", "desired"),
        [
            ([], []),
            (["a"], []),
            ([], ["a", "b", "c"]),
            (["a", "b", "c"], ["d", "e"]),
            (["a", "b"], ["b", "a", "c", "d"]),
        ],
    )
    def test_at_most_one_create_and_delete(self, previous, desired):
        """The API payload never holds more than one Create and one Delete."""
        update = diff_indexes([_index(n) for n in previous], [_index(n) for n in desired])
        entries = update.to_api() or []

        assert sum(1 for e in entries if "Create" in e) <= 1
        assert sum(1 for e in entries if "Delete" in e) <= 1

    def test_api_entries_hold_one_action_each(self):
        """Create and Delete go out as separate GlobalSecondaryIndexUpdates entries."""
        update = diff_indexes([_index("a")], [_index("c")])

        assert update.to_api() == [
            {"Create": _index("c").to_api()},
            {"Delete": {"IndexName": "idx-a"}},
        ]


class TestDiffStream:
    """Tests for the stream enable/disable decision."""

    enabled = StreamSpec(enabled=True, view_type="NEW_IMAGE")
    disabled = StreamSpec(enabled=False)

    def test_enabled_to_disabled(self):
        change = diff_stream(self.enabled, self.disabled)
        assert change.action is StreamAction.DISABLE
        assert change.to_api() == {"StreamEnabled": False}

    def test_disabled_to_enabled(self):
        change = diff_stream(self.disabled, self.enabled)
        assert change.action is StreamAction.ENABLE
        assert change.to_api() == {"StreamEnabled": True, "StreamViewType": "NEW_IMAGE"}

    def test_absent_to_enabled(self):
        assert diff_stream(None, self.enabled).action is StreamAction.ENABLE

    def test_enabled_to_enabled(self):
        change = diff_stream(self.enabled, self.enabled)
        assert change.action is StreamAction.NO_CHANGE
        assert change.to_api() is None

    def test_disabled_to_disabled(self):
        assert diff_stream(self.disabled, self.disabled).action is StreamAction.NO_CHANGE

    def test_disable_wins_over_spec_without_enabled(self):
        """A desired spec lacking enabled=true disables a previously enabled stream."""
        malformed = StreamSpec.from_dict({"viewType": "NEW_IMAGE"})

        assert diff_stream(self.enabled, malformed).action is StreamAction.DISABLE
        assert diff_stream(self.enabled, None).action is StreamAction.DISABLE


class TestDiffReplicas:
    """Tests for replica set diffs."""

    def test_add_region(self):
        """Previous [us-east-1], desired [us-east-1, eu-west-1] only creates eu-west-1."""
        update = diff_replicas(_replicas("us-east-1"), _replicas("us-east-1", "eu-west-1"))

        assert update == ReplicaUpdate(to_add=("eu-west-1",))
        assert update.to_api() == [{"Create": {"RegionName": "eu-west-1"}}]

    def test_order_does_not_matter(self):
        update = diff_replicas(
            _replicas("eu-west-1", "us-west-2", "ap-south-1"),
            _replicas("ap-south-1", "eu-west-1", "us-west-2"),
        )
        assert update.is_empty

    def test_mixed_batch(self):
        """Additions and removals are submitted together."""
        update = diff_replicas(_replicas("eu-west-1"), _replicas("us-west-2"))

        assert update.to_api() == [
            {"Create": {"RegionName": "us-west-2"}},
            {"Delete": {"RegionName": "eu-west-1"}},
        ]

    def test_teardown_deletes_everything(self):
        update = teardown_replicas(_replicas("us-west-2", "eu-west-1"))

        assert update.to_add == ()
        assert update.to_remove == ("eu-west-1", "us-west-2")


class TestPlanTable:
    """Tests for combining the diffs into one plan."""

    def test_absent_table_plans_create(self):
        config = _config(
            stream={"enabled": True},
            globalSecondaryIndexes=[
                {"indexName": "by-id", "keySchema": [{"attributeName": "id", "role": "HASH"}]}
            ],
        )
        plan = plan_table(config, Absent("orders"))

        assert plan.action == "create"
        assert plan.create_request["TableName"] == "orders"
        assert plan.create_request["BillingMode"] == "PAY_PER_REQUEST"
        assert plan.create_request["StreamSpecification"] == {
            "StreamEnabled": True,
            "StreamViewType": "NEW_AND_OLD_IMAGES",
        }
        assert [i["IndexName"] for i in plan.create_request["GlobalSecondaryIndexes"]] == ["by-id"]
        assert "LocalSecondaryIndexes" not in plan.create_request

    def test_matching_table_is_noop(self):
        """Desired == observed produces no update request at all."""
        observed = ObservedTableState.from_api(table_description())
        plan = plan_table(_config(), Present(observed))

        assert plan.action == "none"
        assert plan.update_request is None
        assert plan.is_noop

    def test_update_omits_untouched_fields(self):
        """An index-only change carries no StreamSpecification."""
        observed = ObservedTableState.from_api(table_description(gsis=["old"]))
        plan = plan_table(_config(), Present(observed))

        assert plan.action == "update"
        assert plan.update_request["GlobalSecondaryIndexUpdates"] == [
            {"Delete": {"IndexName": "old"}}
        ]
        assert "StreamSpecification" not in plan.update_request

    def test_stream_only_update_omits_index_field(self):
        request = build_update_request(
            _config(stream={"enabled": True}),
            IndexUpdate(),
            diff_stream(StreamSpec(), StreamSpec(enabled=True)),
        )

        assert "GlobalSecondaryIndexUpdates" not in request
        assert request["StreamSpecification"]["StreamEnabled"] is True

    def test_replica_changes_are_planned_separately(self):
        observed = ObservedTableState.from_api(table_description(replicas=["us-west-2"]))
        plan = plan_table(_config(replicas=[{"regionName": "eu-west-1"}]), Present(observed))

        assert plan.action == "none"
        assert not plan.is_noop
        assert plan.to_dict()["replicas"] == {"create": ["eu-west-1"], "delete": ["us-west-2"]}

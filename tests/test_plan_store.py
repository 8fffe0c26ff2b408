"""Tests for the remediation plan store."""

from datetime import timedelta

import pytest

from incident_core_lib.core.plan_store import RemediationPlanStore
from incident_core_lib.models import (
    ExecutionStatus,
    ManualStep,
    RemediationStep,
    RestartService,
    StepStatus,
)


def steps():
    return [
        RemediationStep(id="a", description="Restart api", action=RestartService(service_name="api")),
        RemediationStep(id="b", description="Notify on-call", action=ManualStep(instructions="notify on-call")),
        RemediationStep(id="c", description="Check dashboards"),
    ]


def finish_all(store, incident_id, status=StepStatus.COMPLETED):
    plan = store.get_plan(incident_id)
    for index, step in enumerate(plan.steps):
        plan = plan.with_step(index, step.model_copy(update={"status": status, "outcome": "done"}))
    store.replace(plan.model_copy(update={"completed_at": store.clock()}))


class TestCreateAndGet:
    def test_create_then_get_returns_same_ordered_pending_steps(self, clock):
        store = RemediationPlanStore(clock=clock)
        store.create_plan(1, steps(), diagnosis_id=9)

        plan = store.get_plan(1)
        assert [s.id for s in plan.steps] == ["a", "b", "c"]
        assert all(s.status == StepStatus.PENDING and s.outcome is None for s in plan.steps)
        assert plan.diagnosis_id == 9
        assert plan.created_at == clock.now

    def test_create_resets_step_state(self, clock):
        store = RemediationPlanStore(clock=clock)
        done = RemediationStep(id="x", description="d", status=StepStatus.COMPLETED, outcome="old")

        plan = store.create_plan(1, [done])

        assert plan.steps[0].status == StepStatus.PENDING
        assert plan.steps[0].outcome is None

    def test_new_plan_replaces_previous(self, clock):
        store = RemediationPlanStore(clock=clock)
        store.create_plan(1, steps())
        store.create_plan(1, [RemediationStep(id="z", description="only")])

        assert [s.id for s in store.get_plan(1).steps] == ["z"]
        assert len(store) == 1

    def test_duplicate_step_ids_rejected(self, clock):
        store = RemediationPlanStore(clock=clock)
        with pytest.raises(ValueError):
            store.create_plan(1, [RemediationStep(id="a", description="1"), RemediationStep(id="a", description="2")])

    def test_missing_plan(self, clock):
        store = RemediationPlanStore(clock=clock)
        assert store.get_plan(404) is None
        assert store.get_progress(404) is None


class TestProgress:
    def test_not_started(self, clock):
        store = RemediationPlanStore(clock=clock)
        store.create_plan(1, steps())

        progress = store.get_progress(1)
        assert progress.status == ExecutionStatus.NOT_STARTED
        assert progress.current_step_index == 0
        assert progress.error_message is None

    def test_in_progress_and_failed(self, clock):
        store = RemediationPlanStore(clock=clock)
        plan = store.create_plan(1, steps())

        plan = plan.with_step(0, plan.steps[0].model_copy(update={"status": StepStatus.COMPLETED}))
        store.replace(plan)
        assert store.get_progress(1).status == ExecutionStatus.IN_PROGRESS
        assert store.get_progress(1).current_step_index == 1

        plan = plan.with_step(1, plan.steps[1].model_copy(update={"status": StepStatus.FAILED, "outcome": "Action failed: x"}))
        store.replace(plan)
        progress = store.get_progress(1)
        assert progress.status == ExecutionStatus.FAILED
        assert progress.error_message == "Action failed: x"

    def test_completed(self, clock):
        store = RemediationPlanStore(clock=clock)
        store.create_plan(1, steps())
        finish_all(store, 1)

        progress = store.get_progress(1)
        assert progress.status == ExecutionStatus.COMPLETED
        assert progress.current_step_index == 3

    def test_empty_plan_is_completed(self, clock):
        store = RemediationPlanStore(clock=clock)
        store.create_plan(1, [])
        assert store.get_progress(1).status == ExecutionStatus.COMPLETED

    def test_running_step_outranks_an_earlier_failure(self, clock):
        store = RemediationPlanStore(clock=clock)
        plan = store.create_plan(1, steps())
        plan = plan.with_step(0, plan.steps[0].model_copy(update={"status": StepStatus.FAILED, "outcome": "Action failed: x"}))
        plan = plan.with_step(1, plan.steps[1].model_copy(update={"status": StepStatus.IN_PROGRESS}))
        store.replace(plan)

        progress = store.get_progress(1)
        assert progress.status == ExecutionStatus.IN_PROGRESS
        assert progress.error_message == "Action failed: x"
        assert not store.get_plan(1).is_finished

    def test_progress_is_a_pure_projection(self, clock):
        store = RemediationPlanStore(clock=clock)
        store.create_plan(1, steps())
        before = store.get_plan(1)
        store.get_progress(1)
        assert store.get_plan(1) == before


class TestRetention:
    def test_finished_plan_evicted_after_retention(self, clock):
        store = RemediationPlanStore(retention=timedelta(minutes=30), clock=clock)
        store.create_plan(1, steps())
        finish_all(store, 1)

        clock.advance(minutes=29)
        assert store.get_plan(1) is not None
        clock.advance(minutes=1)
        assert store.get_plan(1) is None
        assert store.get_progress(1) is None

    def test_empty_plan_is_finished_on_creation_and_evicted(self, clock):
        store = RemediationPlanStore(retention=timedelta(minutes=30), clock=clock)
        plan = store.create_plan(1, [])

        assert plan.completed_at == clock.now
        clock.advance(days=30)
        assert store.purge_expired() == [1]
        assert len(store) == 0

    def test_unfinished_plan_never_evicted(self, clock):
        store = RemediationPlanStore(retention=timedelta(minutes=1), clock=clock)
        store.create_plan(1, steps())

        clock.advance(days=2)
        assert store.get_plan(1) is not None
        assert store.purge_expired() == []

    def test_purge_expired_returns_evicted_ids(self, clock):
        store = RemediationPlanStore(retention=timedelta(minutes=5), clock=clock)
        for incident_id in (1, 2, 3):
            store.create_plan(incident_id, steps())
        finish_all(store, 1)
        finish_all(store, 3, status=StepStatus.FAILED)

        clock.advance(minutes=10)
        assert sorted(store.purge_expired()) == [1, 3]
        assert len(store) == 1


class TestLocks:
    @pytest.mark.asyncio
    async def test_lock_is_per_incident(self, clock):
        store = RemediationPlanStore(clock=clock)
        assert store.lock(1) is store.lock(1)
        assert store.lock(1) is not store.lock(2)

        async with store.lock(1):
            assert not store.lock(2).locked()

"""
Tests for the serial dictatorship allocation rule
"""

import random
from datetime import datetime, timedelta

from allocator.models.records import OptionRecord, SubmissionRecord
from allocator.services.allocation_engine import AllocationResult, serial_dictatorship

T0 = datetime(2024, 6, 1, 10, 0, 0)


def option(option_id, capacity, sort_order=0):
    return OptionRecord(
        id=option_id, event_id="evt", name=option_id.upper(), description=None,
        capacity=capacity, sort_order=sort_order,
    )


def submission(sub_id, rankings, minute):
    return SubmissionRecord(
        id=sub_id, event_id="evt", email=f"{sub_id}@example.com",
        rankings=list(rankings), verified=True, submitted_at=T0 + timedelta(minutes=minute),
    )


class TestSerialDictatorship:
    def test_first_come_gets_contested_option(self):
        """Earlier submitter wins a single contested seat; the later one falls through"""
        options = [option("a", 1), option("b", 1)]
        subs = [submission("s1", ["a", "b"], 0), submission("s2", ["a", "b"], 1)]

        result = serial_dictatorship(options, subs)

        assert result.assignments == {"s1": "a", "s2": "b"}
        assert result.unassigned == []

    def test_overflow_is_unassigned(self):
        """Once every ranked option is full the participant is left unassigned"""
        options = [option("a", 1)]
        subs = [
            submission("s1", ["a"], 0),
            submission("s2", ["a"], 1),
            submission("s3", ["a"], 2),
        ]

        result = serial_dictatorship(options, subs)

        assert result.assignments == {"s1": "a"}
        assert result.unassigned == ["s2", "s3"]

    def test_processing_follows_submitted_at_not_input_order(self):
        """Input order is irrelevant when timestamps differ"""
        options = [option("a", 1), option("b", 1)]
        subs = [submission("late", ["a", "b"], 5), submission("early", ["a", "b"], 1)]

        result = serial_dictatorship(options, subs)

        assert result.assignments == {"early": "a", "late": "b"}

    def test_partial_ranking_leaves_unranked_capacity_unused(self):
        """A participant is never placed in an option they did not rank"""
        options = [option("a", 1), option("b", 5)]
        subs = [submission("s1", ["a"], 0), submission("s2", ["a"], 1)]

        result = serial_dictatorship(options, subs)

        assert result.assignments == {"s1": "a"}
        assert result.unassigned == ["s2"]

    def test_unknown_option_ids_are_skipped(self):
        """Ids that no longer resolve to an option are passed over"""
        options = [option("b", 1)]
        subs = [submission("s1", ["deleted", "b"], 0)]

        result = serial_dictatorship(options, subs)

        assert result.assignments == {"s1": "b"}

    def test_equal_timestamps_keep_input_order(self):
        """Ties on submitted_at are broken by the order submissions arrive in"""
        options = [option("a", 1)]
        subs = [submission("first", ["a"], 0), submission("second", ["a"], 0)]

        result = serial_dictatorship(options, subs)
        assert result.assignments == {"first": "a"}

        result = serial_dictatorship(options, list(reversed(subs)))
        assert result.assignments == {"second": "a"}

    def test_no_submissions(self):
        result = serial_dictatorship([option("a", 1)], [])
        assert result.assignments == {}
        assert result.unassigned == []

    def test_rows_cover_every_submission(self):
        """Allocation rows include unassigned participants with no option"""
        result = AllocationResult(assignments={"s1": "a"}, unassigned=["s2"])

        rows = result.rows("evt")

        assert [(r.submission_id, r.option_id) for r in rows] == [("s1", "a"), ("s2", None)]
        assert all(r.event_id == "evt" for r in rows)


class TestAllocationProperties:
    """Randomized checks of the rule's guarantees"""

    def _random_case(self, rng):
        option_ids = [f"o{i}" for i in range(rng.randint(1, 5))]
        options = [option(oid, rng.randint(1, 3), i) for i, oid in enumerate(option_ids)]
        subs = []
        for i in range(rng.randint(0, 15)):
            ranked = rng.sample(option_ids, rng.randint(1, len(option_ids)))
            subs.append(submission(f"s{i}", ranked, rng.randint(0, 30)))
        return options, subs

    def test_every_submission_decided_once_and_capacity_respected(self):
        rng = random.Random(1234)
        for _ in range(200):
            options, subs = self._random_case(rng)
            result = serial_dictatorship(options, subs)

            assigned_ids = set(result.assignments)
            assert assigned_ids.isdisjoint(result.unassigned)
            assert assigned_ids | set(result.unassigned) == {s.id for s in subs}
            assert len(result.unassigned) == len(set(result.unassigned))

            by_id = {s.id: s for s in subs}
            for sub_id, option_id in result.assignments.items():
                assert option_id in by_id[sub_id].rankings

            for opt in options:
                taken = sum(1 for oid in result.assignments.values() if oid == opt.id)
                assert taken <= opt.capacity

    def test_deterministic(self):
        rng = random.Random(99)
        for _ in range(50):
            options, subs = self._random_case(rng)
            first = serial_dictatorship(options, subs)
            second = serial_dictatorship(options, subs)
            assert first.assignments == second.assignments
            assert first.unassigned == second.unassigned

    def test_unassigned_only_when_all_ranked_options_full(self):
        """An unassigned participant's ranked options were all exhausted"""
        rng = random.Random(7)
        for _ in range(200):
            options, subs = self._random_case(rng)
            result = serial_dictatorship(options, subs)
            capacity = {opt.id: opt.capacity for opt in options}
            used = {opt.id: 0 for opt in options}
            for oid in result.assignments.values():
                used[oid] += 1

            by_id = {s.id: s for s in subs}
            for sub_id in result.unassigned:
                for oid in by_id[sub_id].rankings:
                    assert used[oid] == capacity[oid]

    def test_reordering_later_submission_does_not_affect_earlier(self):
        """The k-th participant's outcome depends only on the first k lists"""
        rng = random.Random(42)
        for _ in range(100):
            options, subs = self._random_case(rng)
            if len(subs) < 2:
                continue
            ordered = sorted(subs, key=lambda s: s.submitted_at)
            k = rng.randint(0, len(ordered) - 2)
            baseline = serial_dictatorship(options, ordered)

            changed = list(ordered)
            last = changed[-1]
            shuffled = list(last.rankings)
            rng.shuffle(shuffled)
            changed[-1] = submission(last.id, shuffled, 0)
            changed[-1].submitted_at = last.submitted_at
            altered = serial_dictatorship(options, changed)

            for sub in ordered[: k + 1]:
                if sub.id == last.id:
                    continue
                assert baseline.assignments.get(sub.id) == altered.assignments.get(sub.id)

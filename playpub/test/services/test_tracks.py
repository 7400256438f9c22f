from __future__ import annotations

from playpub.core.result import Err, Ok
from playpub.output.console import MockConsole
from playpub.services.publish.backend import MockPublisherBackend
from playpub.services.publish.errors import (
    InvalidOptions,
    PartialAssignment,
    RemoteError,
    RolloutPercentageReduction,
)
from playpub.services.publish.model import (
    EvictionPolicy,
    ReductionPolicy,
    Track,
    TrackName,
    TrackState,
)
from playpub.services.publish.session import EditSession
from playpub.services.publish.tracks import (
    IGNORED_ROLLOUT_MESSAGE,
    assign_to_track,
    compute_track_plan,
)

UPLOAD = EvictionPolicy.UPLOAD
DIRECT = EvictionPolicy.DIRECT
CLAMP = ReductionPolicy.CLAMP
REJECT = ReductionPolicy.REJECT


def _state(*tracks: Track) -> TrackState:
    return TrackState.from_tracks(tracks)


def _backend(*codes: int) -> MockPublisherBackend:
    backend = MockPublisherBackend()
    for vc in codes:
        backend.add_artifact(vc, f"sha-{vc}")
    return backend


def _session(backend: MockPublisherBackend) -> EditSession:
    opened = EditSession.open(backend, backend.application_id)
    assert isinstance(opened, Ok)
    return opened.value


class TestComputeTrackPlan:
    def test_upload_pivot_keeps_new_codes(self) -> None:
        state = _state(Track(name="alpha", version_codes=(8, 9, 10)))

        plan = compute_track_plan(state, [10, 11], TrackName.BETA, 1.0, UPLOAD, CLAMP)

        assert isinstance(plan, Ok)
        assert plan.value.pivot == 10
        assert [u.track for u in plan.value.updates] == [
            Track(name="alpha", version_codes=(10,)),
            Track(name="beta", version_codes=(10, 11)),
        ]

    def test_direct_pivot_clears_moved_codes(self) -> None:
        state = _state(Track(name="alpha", version_codes=(8, 9, 10, 12)))

        plan = compute_track_plan(state, [9, 10], TrackName.BETA, 1.0, DIRECT, REJECT)

        assert isinstance(plan, Ok)
        assert plan.value.pivot == 11
        assert plan.value.updates[0].track == Track(name="alpha", version_codes=(12,))

    def test_no_op_evictions_are_skipped(self) -> None:
        state = _state(
            Track(name="alpha", version_codes=(12,)),
            Track(name="beta", version_codes=()),
        )

        plan = compute_track_plan(state, [10], TrackName.PRODUCTION, 1.0, UPLOAD, CLAMP)

        assert isinstance(plan, Ok)
        assert [u.kind for u in plan.value.updates] == ["assign"]

    def test_production_order(self) -> None:
        state = _state(
            Track(name="alpha", version_codes=(3,)),
            Track(name="beta", version_codes=(4,)),
            Track(name="rollout", version_codes=(5,), user_fraction=0.1),
        )

        plan = compute_track_plan(state, [6], TrackName.PRODUCTION, 1.0, UPLOAD, CLAMP)

        assert isinstance(plan, Ok)
        assert [(u.kind, u.track.name) for u in plan.value.updates] == [
            ("evict", "beta"),
            ("clear_rollout", "rollout"),
            ("evict", "alpha"),
            ("assign", "production"),
        ]
        assert plan.value.final.user_fraction is None

    def test_staged_rollout_goes_to_rollout_track(self) -> None:
        plan = compute_track_plan(_state(), [10, 11], TrackName.PRODUCTION, 0.5, UPLOAD, CLAMP)

        assert isinstance(plan, Ok)
        assert plan.value.final == Track(name="rollout", version_codes=(10, 11), user_fraction=0.5)
        assert plan.value.applied_fraction == 0.5

    def test_reduction_rejected(self) -> None:
        state = _state(Track(name="rollout", version_codes=(5,), user_fraction=0.2))

        plan = compute_track_plan(state, [5], TrackName.PRODUCTION, 0.1, DIRECT, REJECT)

        assert plan == Err(RolloutPercentageReduction(current_fraction=0.2, requested_fraction=0.1))

    def test_reduction_clamped_keeps_higher_fraction(self) -> None:
        state = _state(Track(name="rollout", version_codes=(5,), user_fraction=0.2))

        plan = compute_track_plan(state, [6], TrackName.PRODUCTION, 0.1, UPLOAD, CLAMP)

        assert isinstance(plan, Ok)
        assert plan.value.applied_fraction == 0.2
        assert len(plan.value.notes) == 1
        assert "will remain at 20% rather than the configured 10%" in plan.value.notes[0]

    def test_fraction_ignored_outside_production(self) -> None:
        plan = compute_track_plan(_state(), [6], TrackName.BETA, 0.5, UPLOAD, CLAMP)

        assert isinstance(plan, Ok)
        assert plan.value.notes == (IGNORED_ROLLOUT_MESSAGE,)
        assert plan.value.final == Track(name="beta", version_codes=(6,))

    def test_invalid_input(self) -> None:
        assert isinstance(compute_track_plan(_state(), [], TrackName.BETA, 1.0, UPLOAD, CLAMP), Err)
        bad_fraction = compute_track_plan(_state(), [1], TrackName.BETA, 0.0, UPLOAD, CLAMP)
        assert isinstance(bad_fraction, Err)
        assert isinstance(bad_fraction.error, InvalidOptions)
        assert isinstance(
            compute_track_plan(_state(), [1], TrackName.ROLLOUT, 1.0, UPLOAD, CLAMP), Err
        )


class TestAssignToTrack:
    def test_staged_production_rollout(self) -> None:
        backend = _backend(8, 9, 10, 11)
        backend.set_track("alpha", [8, 10])
        backend.set_track("beta", [9])
        session = _session(backend)
        console = MockConsole()

        result = assign_to_track(
            session,
            [10, 11],
            TrackName.PRODUCTION,
            0.5,
            eviction=UPLOAD,
            reduction=CLAMP,
            console=console,
        )

        assert result == Ok(Track(name="rollout", version_codes=(10, 11), user_fraction=0.5))
        assert backend.track_updates() == [
            Track(name="beta", version_codes=()),
            Track(name="alpha", version_codes=(10,)),
            Track(name="rollout", version_codes=(10, 11), user_fraction=0.5),
        ]
        assert backend.count("tracks.list") == 1
        assert console.find("Assigning APK(s) to be rolled out to 50% of production users...")
        assert console.find("The production release track will now contain the APK(s): 10, 11")

    def test_full_production_release_clears_rollout(self) -> None:
        backend = _backend(5, 6)
        backend.set_track("rollout", [5], user_fraction=0.2)
        session = _session(backend)
        console = MockConsole()

        result = assign_to_track(
            session, [6], TrackName.PRODUCTION, 1.0, eviction=UPLOAD, reduction=CLAMP, console=console
        )
        session.commit([6])

        assert result == Ok(Track(name="production", version_codes=(6,)))
        assert backend.tracks["rollout"].is_empty
        assert backend.tracks["production"].version_codes == (6,)
        assert console.find("Removing existing staged rollout APK(s): 5")

    def test_rejected_reduction_sends_nothing(self) -> None:
        backend = _backend(5, 6)
        backend.set_track("rollout", [5], user_fraction=0.5)
        backend.set_track("beta", [4])

        result = assign_to_track(
            _session(backend),
            [6],
            TrackName.PRODUCTION,
            0.2,
            eviction=DIRECT,
            reduction=REJECT,
            console=MockConsole(),
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, RolloutPercentageReduction)
        assert backend.count("tracks.update") == 0

    def test_ignored_fraction_is_reported(self) -> None:
        backend = _backend(6)
        console = MockConsole()

        assign_to_track(
            _session(backend), [6], TrackName.ALPHA, 0.5, eviction=UPLOAD, reduction=CLAMP, console=console
        )

        assert console.find(IGNORED_ROLLOUT_MESSAGE)

    def test_failure_after_eviction_is_partial(self) -> None:
        backend = _backend(3, 6)
        backend.set_track("alpha", [3])
        backend.fail("tracks.update", after=1)

        result = assign_to_track(
            _session(backend), [6], TrackName.BETA, 1.0, eviction=UPLOAD, reduction=CLAMP, console=MockConsole()
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, PartialAssignment)
        assert result.error.applied_tracks == ("alpha",)
        assert isinstance(result.error.cause, RemoteError)

    def test_first_update_failure_is_not_partial(self) -> None:
        backend = _backend(3, 6)
        backend.set_track("alpha", [3])
        backend.fail("tracks.update")

        result = assign_to_track(
            _session(backend), [6], TrackName.BETA, 1.0, eviction=UPLOAD, reduction=CLAMP, console=MockConsole()
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, RemoteError)

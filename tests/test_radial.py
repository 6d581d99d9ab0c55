from __future__ import annotations

import math

import numpy as np
import pytest

from circadian_clock.config import AppConfig
from circadian_clock.errors import InvariantViolation
from circadian_clock.features.hourly import SubjectHours
from circadian_clock.geometry.radial import (
    angle_for_hour,
    axis_rings,
    hour_for_angle,
    hour_ticks,
    nearest_hour,
    polar_to_xy,
    project,
)
from circadian_clock.geometry.scale import LinearScale, metric_scale
from circadian_clock.models import Metric


def _activity_scale() -> LinearScale:
    return metric_scale(Metric.activity, AppConfig())


def test_metric_scales_map_domain_onto_radius_range() -> None:
    activity = _activity_scale()
    temperature = metric_scale(Metric.temperature, AppConfig())

    assert activity(0) == pytest.approx(50.0)
    assert activity(34) == pytest.approx(300.0)
    assert temperature(18.0) == pytest.approx(50.0)
    assert temperature(19.5) == pytest.approx(300.0)
    assert activity.invert(activity(12.5)) == pytest.approx(12.5)


def test_linear_scale_is_unclamped_and_rejects_degenerate_domain() -> None:
    scale = LinearScale(domain=(0.0, 10.0), range=(0.0, 100.0))

    assert scale(20.0) == pytest.approx(200.0)
    assert scale(-1.0) == pytest.approx(-10.0)
    np.testing.assert_allclose(scale(np.array([0, 5])), [0.0, 50.0])
    with pytest.raises(ValueError):
        LinearScale(domain=(1.0, 1.0), range=(0.0, 100.0))


def test_scale_maps_inverted_radii_back() -> None:
    scale = _activity_scale()

    for radius in (50.0, 75.0, 172.5, 299.9, 300.0):
        assert scale(scale.invert(radius)) == pytest.approx(radius)


def test_ticks_at_fractions_pairs_radius_with_value() -> None:
    scale = _activity_scale()

    ticks = scale.ticks_at_fractions([0.5, 1.0])

    assert ticks == [(150.0, pytest.approx(13.6)), (300.0, pytest.approx(34.0))]
    assert scale.ticks_at_fractions([0.5], outer_radius=200.0)[0][0] == 100.0


def test_hour_zero_points_up_and_hours_run_clockwise() -> None:
    x0, y0 = polar_to_xy(angle_for_hour(0), 100.0)
    x6, y6 = polar_to_xy(angle_for_hour(6), 100.0)

    assert (x0, y0) == pytest.approx((0.0, -100.0))
    assert (x6, y6) == pytest.approx((100.0, 0.0))


def test_hour_for_angle_inverts_angle_for_hour() -> None:
    for hour in (1.0, 3.25, 11.5, 23.75):
        assert hour_for_angle(angle_for_hour(hour)) == pytest.approx(hour)


def test_nearest_hour_rounds_and_wraps() -> None:
    assert nearest_hour(0.0, -10.0) == 0
    assert nearest_hour(10.0, 0.0) == 6
    assert nearest_hour(0.0, 10.0) == 12
    assert nearest_hour(-10.0, 0.0) == 18
    assert nearest_hour(*polar_to_xy(angle_for_hour(0.6), 80.0)) == 1
    assert nearest_hour(*polar_to_xy(angle_for_hour(23.6), 80.0)) == 0


def test_project_passes_through_control_points() -> None:
    values = [float(hour) for hour in range(24)]
    curve = project(values, _activity_scale())

    for hour in (0, 5, 17, 23):
        expected = polar_to_xy(angle_for_hour(hour), _activity_scale()(values[hour]))
        assert curve.at(hour) == pytest.approx(expected)


def test_curve_closes_smoothly_at_midnight() -> None:
    values = [5.0, 30.0, 12.0] * 8
    curve = project(values, _activity_scale(), tension=0.3)

    assert curve.at(24.0) == pytest.approx(curve.at(0.0))
    segments = curve.bezier_segments()
    assert segments.shape == (24, 4, 2)
    np.testing.assert_allclose(segments[23][3], segments[0][0])
    outgoing = segments[0][1] - segments[0][0]
    incoming = segments[23][3] - segments[23][2]
    np.testing.assert_allclose(outgoing, incoming)


def test_sample_returns_closed_polyline() -> None:
    curve = project([10.0] * 24, _activity_scale())

    polyline = curve.sample(samples_per_hour=4)

    assert polyline.shape == (24 * 4 + 1, 2)
    np.testing.assert_allclose(polyline[-1], polyline[0])


def test_svg_path_is_closed() -> None:
    path = project([10.0] * 24, _activity_scale()).svg_path()

    assert path.startswith("M")
    assert path.endswith("Z")
    assert path.count("C") == 24


def test_project_draws_absent_hours_at_zero() -> None:
    hours = SubjectHours(subject_id="M1", means={0: 10.0, 1: 20.0}, counts={0: 1, 1: 1})
    curve = project(hours, _activity_scale())

    assert math.hypot(*curve.at(5)) == pytest.approx(50.0)
    assert curve.values[1] == 20.0


def test_project_draws_non_finite_mapping_values_at_zero() -> None:
    curve = project({0: float("nan"), 1: 10.0, 2: float("inf"), 3: None}, _activity_scale())

    assert np.isfinite(curve.points).all()
    for hour in (0, 2, 3):
        assert math.hypot(*curve.at(hour)) == pytest.approx(50.0)
    assert curve.values[:4] == (0.0, 10.0, 0.0, 0.0)


def test_all_absent_series_still_closes() -> None:
    curve = project(SubjectHours(subject_id="M1"), _activity_scale())

    assert curve.at(24.0) == pytest.approx(curve.at(0.0))
    polyline = curve.sample(samples_per_hour=8)
    np.testing.assert_allclose(polyline[-1], polyline[0])
    assert np.hypot(polyline[:, 0], polyline[:, 1]).max() == pytest.approx(50.0, rel=0.01)


def test_curve_stays_near_radius_range_for_values_in_domain() -> None:
    values = [17.0 + 17.0 * math.sin(hour * math.pi / 6.0) for hour in range(24)]
    curve = project(values, _activity_scale())

    polyline = curve.sample(samples_per_hour=16)
    radii = np.hypot(polyline[:, 0], polyline[:, 1])

    assert radii.min() >= 50.0 * 0.95
    assert radii.max() <= 300.0 * 1.05


def test_project_rejects_bad_hourly_input() -> None:
    with pytest.raises(InvariantViolation):
        project({25: 1.0}, _activity_scale())
    with pytest.raises(InvariantViolation):
        project([1.0] * 23, _activity_scale())


def test_axis_rings_cover_four_fractions_with_labels() -> None:
    rings = axis_rings(_activity_scale(), 300.0, [0.25, 0.5, 0.75, 1.0], Metric.activity)

    assert [ring.radius for ring in rings] == [75.0, 150.0, 225.0, 300.0]
    assert [ring.label for ring in rings] == ["3 counts", "14 counts", "24 counts", "34 counts"]
    for ring in rings:
        assert math.hypot(*ring.curve.at(7)) == pytest.approx(ring.radius)


def test_temperature_ring_labels_use_degrees() -> None:
    scale = metric_scale(Metric.temperature, AppConfig())
    rings = axis_rings(scale, 300.0, [1.0], Metric.temperature)

    assert rings[0].label == "19.50°C"


def test_hour_ticks_label_every_hour() -> None:
    ticks = hour_ticks(300.0, 20.0)

    assert len(ticks) == 24
    assert ticks[0].label == "12AM"
    assert ticks[12].label == "12PM"
    assert ticks[13].label == "1PM"
    x, y = ticks[0].label_position
    assert (x, y) == pytest.approx((0.0, -320.0))
    assert math.hypot(*ticks[9].line_end) == pytest.approx(300.0)

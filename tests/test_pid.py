"""Unit tests for the PID controllers.

Covers the control law terms, first-call and timing behaviour, anti-windup,
reset, and closed-loop convergence on a vertical point-mass plant.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from flight.control.pid import EPSILON, AltitudeHold, PIDController, VelocityController
from flight.profile import FlightProfile, PIDGains
from uavsim.environment import G0


class FakeRangeSensor:
    """Distance source returning a fixed reading."""

    def __init__(self, reading: float | None, in_range: bool = True, max_range: float = 100.0):
        self.reading = reading
        self.max_range = max_range
        self._in_range = in_range

    def distance(self) -> float | None:
        return self.reading if self._in_range else None

    def in_range(self) -> bool:
        return self._in_range


def simulate_altitude(hold: AltitudeHold, duration: float, dt: float = 0.02, drag: float = 0.3):
    """Vertical point mass driven by an AltitudeHold, resting on the ground at 0."""
    mass = hold.profile.mass_kg
    altitude, velocity = 0.0, 0.0
    times, altitudes = [], []
    for i in range(int(round(duration / dt))):
        now = i * dt
        thrust = hold.compute(altitude, now)
        accel = (thrust - mass * G0 - drag * velocity) / mass
        velocity += accel * dt
        altitude += velocity * dt
        if altitude < 0.0:
            altitude, velocity = 0.0, max(velocity, 0.0)
        times.append(now)
        altitudes.append(altitude)
    return np.array(times), np.array(altitudes)


# =============================================================================
# Control Law Tests
# =============================================================================


class TestPIDController:
    """Test the generic control law."""

    def test_first_call_returns_neutral_output(self):
        pid = PIDController(gains=PIDGains(2.0, 0.5, 0.1), output_limits=(-100.0, 100.0), setpoint=10.0)
        assert pid.compute(0.0, now=5.0) == 0.0
        assert pid.state.initialized
        assert pid.state.integral_sum == 0.0

    def test_terms(self):
        """u = Kp*e + Ki*sum(e*dt) + Kd*de/dt on the second call."""
        pid = PIDController(gains=PIDGains(2.0, 0.5, 0.1), output_limits=(-100.0, 100.0), setpoint=10.0)
        pid.compute(8.0, now=0.0)      # e = 2, records previous error
        out = pid.compute(6.0, now=1.0)  # e = 4, dt = 1

        # P = 8, I = 0.5 * 4 = 2, D = 0.1 * (4 - 2) / 1 = 0.2
        assert_allclose(out, 10.2)
        assert_allclose(pid.state.integral_sum, 4.0)
        assert_allclose(pid.state.previous_error, 4.0)

    def test_baseline_is_added(self):
        pid = PIDController(gains=PIDGains(1.0, 0.0, 0.0), output_limits=(0.0, 50.0), baseline=10.0, setpoint=5.0)
        pid.compute(5.0, now=0.0)
        assert_allclose(pid.compute(3.0, now=0.1), 12.0)

    def test_output_saturation(self):
        pid = PIDController(gains=PIDGains(10.0), output_limits=(-1.0, 1.0), setpoint=100.0)
        pid.compute(0.0, now=0.0)
        assert pid.compute(0.0, now=0.1) == 1.0
        pid.setpoint = -100.0
        assert pid.compute(0.0, now=0.2) == -1.0

    def test_neutral_output_is_saturated_baseline(self):
        pid = PIDController(output_limits=(0.0, 5.0), baseline=12.0)
        assert pid.neutral_output == 5.0

    def test_invalid_limits_rejected(self):
        with pytest.raises(ValueError, match="output_limits"):
            PIDController(output_limits=(1.0, -1.0))

    @pytest.mark.parametrize("second_time", [1.0, 0.5])
    def test_non_positive_dt_holds_last_output(self, second_time):
        """Duplicate or out-of-order ticks repeat the last output without touching state."""
        pid = PIDController(gains=PIDGains(1.0, 1.0, 1.0), output_limits=(-10.0, 10.0), baseline=2.0, setpoint=3.0)
        pid.compute(0.0, now=0.0)
        last = pid.compute(1.0, now=1.0)
        assert last != 2.0
        before = (pid.state.integral_sum, pid.state.previous_error, pid.state.last_timestamp)

        assert pid.compute(50.0, now=second_time) == last
        after = (pid.state.integral_sum, pid.state.previous_error, pid.state.last_timestamp)
        assert after == before

    def test_current_error_is_pure(self):
        pid = PIDController(gains=PIDGains(1.0, 1.0, 0.0), setpoint=4.0)
        pid.compute(1.0, now=0.0)
        pid.compute(1.0, now=1.0)
        integral = pid.state.integral_sum

        assert pid.current_error(1.5) == 2.5
        assert pid.state.integral_sum == integral


class TestAntiWindup:
    """Integral term bounded by the actuator limit."""

    def test_integral_limit_formula(self):
        pid = PIDController(gains=PIDGains(1.0, 0.1, 0.5), output_limits=(0.0, 20.0))
        assert_allclose(pid.integral_limit, 20.0 / (0.1 + EPSILON))

    def test_zero_ki_keeps_limit_finite(self):
        pid = PIDController(gains=PIDGains(1.0, 0.0, 0.0), output_limits=(-15.0, 15.0))
        assert_allclose(pid.integral_limit, 15.0 / EPSILON)

    @pytest.mark.parametrize("setpoint", [1000.0, -1000.0])
    def test_sustained_error_is_bounded(self, setpoint):
        profile = FlightProfile()
        hold = AltitudeHold(profile)
        hold.setpoint = setpoint
        bound = profile.max_vertical_thrust / (profile.altitude_gains.ki + EPSILON)

        peak = 0.0
        for i in range(5000):
            hold.compute(0.0, now=i * 0.5)
            peak = max(peak, abs(hold.integral_sum))

        assert peak <= bound + 1e-9
        assert_allclose(abs(hold.integral_sum), bound)


class TestReset:
    """Reset restores first-call behaviour."""

    def test_reset_reproduces_first_output(self):
        hold = AltitudeHold(FlightProfile())
        first = hold.compute(3.0, now=0.0)
        for i in range(1, 200):
            hold.compute(3.0 + 0.1 * i, now=i * 0.02)
        assert hold.integral_sum != 0.0

        hold.reset()
        assert hold.integral_sum == 0.0
        assert hold.compute(7.0, now=100.0) == first

    def test_reset_is_idempotent(self):
        speed = VelocityController(FlightProfile())
        speed.compute(0.0, now=0.0)
        speed.compute(2.0, now=0.5)
        speed.reset()
        speed.reset()
        assert speed.compute(5.0, now=9.0) == 0.0


# =============================================================================
# Airframe Controllers
# =============================================================================


class TestAltitudeHold:
    """Test the altitude variant."""

    def test_hover_feed_forward(self):
        profile = FlightProfile(mass_kg=1.2)
        hold = AltitudeHold(profile)
        assert_allclose(hold.hover_thrust, 1.2 * G0)
        assert hold.pid.output_limits == (0.0, profile.max_vertical_thrust)
        assert_allclose(hold.compute(0.0, now=0.0), 1.2 * G0)

    def test_default_setpoint_from_profile(self):
        hold = AltitudeHold(FlightProfile(target_altitude=35.0))
        assert hold.setpoint == 35.0

    def test_thrust_never_negative(self):
        hold = AltitudeHold(FlightProfile())
        hold.setpoint = 0.0
        hold.compute(500.0, now=0.0)
        assert hold.compute(500.0, now=0.1) == 0.0

    def test_terrain_reading_replaces_altitude(self):
        sensor = FakeRangeSensor(reading=12.0)
        hold = AltitudeHold(FlightProfile(), distance_source=sensor)
        assert hold.using_terrain_relative
        assert hold.effective_altitude(50.0) == 12.0
        hold.setpoint = 20.0
        assert hold.current_error(50.0) == 8.0

    def test_out_of_range_falls_back_to_altitude(self):
        hold = AltitudeHold(FlightProfile(), distance_source=FakeRangeSensor(12.0, in_range=False))
        assert hold.effective_altitude(50.0) == 50.0

    def test_terrain_mode_toggle(self):
        hold = AltitudeHold(FlightProfile(), distance_source=FakeRangeSensor(12.0))
        hold.set_terrain_relative(False)
        assert not hold.using_terrain_relative
        assert hold.effective_altitude(50.0) == 50.0

        hold.set_distance_source(None)
        hold.set_terrain_relative(True)
        assert not hold.using_terrain_relative

    def test_convergence(self):
        """Default gains settle within the RMS band on a point-mass plant."""
        hold = AltitudeHold(FlightProfile())
        hold.setpoint = 20.0
        times, altitudes = simulate_altitude(hold, duration=120.0)

        settled = altitudes[times >= 90.0]
        rms = float(np.sqrt(np.mean((settled - 20.0) ** 2)))
        assert rms < 0.5
        assert altitudes.max() > 15.0


class TestVelocityController:
    """Test the forward speed variant."""

    def test_limits_and_neutral(self):
        profile = FlightProfile(max_forward_thrust=15.0)
        speed = VelocityController(profile)
        assert speed.pid.output_limits == (-15.0, 15.0)
        assert speed.compute(0.0, now=0.0) == 0.0
        assert speed.setpoint == profile.target_speed

    def test_brakes_when_too_fast(self):
        speed = VelocityController(FlightProfile())
        speed.setpoint = 5.0
        speed.compute(10.0, now=0.0)
        assert speed.compute(10.0, now=0.1) < 0.0

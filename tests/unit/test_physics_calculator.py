"""Tests for PhysicsCalculator."""

import pytest

from loom.domain.models import ProgressType, ThreadCategory
from loom.services.physics_calculator import PhysicsCalculator, calculate_physics


@pytest.fixture
def calculator(config):
    return PhysicsCalculator(config)


class TestQuantities:
    def test_basic_quantities(self, calculator, make_thread):
        thread = make_thread(first_chapter=0, last_mentioned_chapter=10)

        physics = calculator.calculate(thread, 20)

        assert physics.distance == 10
        assert physics.age == 20
        assert physics.mass == 50.0
        # 50 * 10 / 10
        assert physics.gravity == 50.0
        # 10 silent chapters * 2, no mention noise
        assert physics.entropy == 20.0
        # (gravity + debt + entropy) * MINOR weight
        assert physics.urgency == 70.0

    def test_windowed_velocity(self, calculator, make_thread):
        thread = make_thread(
            first_chapter=0,
            last_mentioned_chapter=19,
            progress_count=4,
            progress_chapters=[3, 12, 15, 19],
        )

        physics = calculator.calculate(thread, 20)

        # 3 events in (10, 20] over a 10-chapter window, scaled by 10
        assert physics.velocity == 3.0

    def test_velocity_falls_back_to_lifetime_rate(self, calculator, make_thread):
        thread = make_thread(first_chapter=0, last_mentioned_chapter=20, progress_count=4)

        physics = calculator.calculate(thread, 20)

        assert physics.velocity == 2.0

    def test_static_thread_has_zero_velocity(self, calculator, make_thread):
        thread = make_thread(first_chapter=0, last_mentioned_chapter=5)

        assert calculator.calculate(thread, 20).velocity == 0.0

    def test_regression_gives_negative_velocity(self, calculator, make_thread):
        thread = make_thread(
            first_chapter=0,
            last_mentioned_chapter=18,
            last_progress_type=ProgressType.REGRESSION,
        )

        assert calculator.calculate(thread, 20).velocity < 0

    def test_mention_noise_raises_entropy(self, calculator, make_thread):
        quiet = make_thread(last_mentioned_chapter=20, mention_count=2, progress_count=2)
        noisy = make_thread(last_mentioned_chapter=20, mention_count=11, progress_count=1)

        assert calculator.calculate(quiet, 20).entropy == 0.0
        # (11 / 1 - 1) * 5 = 50, capped at 40
        assert calculator.calculate(noisy, 20).entropy == 40.0

    def test_entropy_bounded(self, calculator, make_thread):
        thread = make_thread(first_chapter=0, last_mentioned_chapter=0, mention_count=50)

        assert calculator.calculate(thread, 200).entropy == 100.0

    def test_category_weights_urgency(self, calculator, make_thread):
        fields = dict(first_chapter=0, last_mentioned_chapter=10, payoff_debt=20.0)
        minor = make_thread("a", category=ThreadCategory.MINOR, **fields)
        sovereign = make_thread("b", category=ThreadCategory.SOVEREIGN, **fields)
        seed = make_thread("c", category=ThreadCategory.SEED, **fields)

        u_minor = calculator.calculate(minor, 20).urgency
        u_sovereign = calculator.calculate(sovereign, 20).urgency
        u_seed = calculator.calculate(seed, 20).urgency

        assert u_sovereign == pytest.approx(2 * u_minor)
        assert u_seed == pytest.approx(0.5 * u_minor)

    def test_urgency_clamped_to_max(self, calculator, make_thread, config):
        thread = make_thread(payoff_debt=5000.0)

        assert calculator.calculate(thread, 10).urgency == config.max_urgency


class TestOverrides:
    def test_forced_attention_floors_at_critical(self, calculator, make_thread, config):
        thread = make_thread(last_mentioned_chapter=10, attention_forced=True)

        assert calculator.calculate(thread, 12).urgency == config.urgency_critical_threshold

    def test_forced_attention_multiplies_high_urgency(self, calculator, make_thread):
        base = make_thread(category=ThreadCategory.MAJOR, payoff_debt=400.0)
        forced = base.evolve(attention_forced=True)

        u_base = calculator.calculate(base, 0).urgency
        u_forced = calculator.calculate(forced, 0).urgency

        assert u_forced == pytest.approx(min(1000.0, u_base * 1.5))

    def test_intentional_abandonment_zero_urgency(self, calculator, make_thread):
        thread = make_thread(payoff_debt=90.0, intentional_abandonment=True)

        assert calculator.calculate(thread, 50).urgency == 0.0


class TestAnomalies:
    def test_future_mention_clamped(self, calculator, make_thread):
        thread = make_thread(first_chapter=5, last_mentioned_chapter=30)

        physics = calculator.calculate(thread, 20)

        assert physics.distance == 0
        assert physics.age == 15

    def test_negative_chapter_clamped(self, calculator, make_thread):
        thread = make_thread(first_chapter=0, last_mentioned_chapter=3)

        physics = calculator.calculate(thread, -4)

        assert physics.distance == 0
        assert physics.age == 0


class TestProperties:
    def test_determinism(self, calculator, make_thread):
        thread = make_thread(
            category=ThreadCategory.MAJOR,
            first_chapter=3,
            last_mentioned_chapter=17,
            mention_count=9,
            progress_count=3,
            progress_chapters=[5, 9, 17],
            payoff_debt=33.3,
        )

        assert calculator.calculate(thread, 41) == calculator.calculate(thread, 41)
        assert calculate_physics(thread, 41) == calculator.calculate(thread, 41)

    @pytest.mark.parametrize("category", list(ThreadCategory))
    def test_monotonic_silence(self, calculator, make_thread, category):
        thread = make_thread(
            category=category,
            first_chapter=1,
            last_mentioned_chapter=4,
            mention_count=6,
            progress_count=2,
            payoff_debt=10.0,
        )

        previous = calculator.calculate(thread, 4)
        for chapter in range(5, 300):
            physics = calculator.calculate(thread, chapter)
            assert physics.distance > previous.distance
            assert physics.urgency >= previous.urgency
            previous = physics

    def test_bounds_across_population(self, calculator, make_thread):
        threads = [
            make_thread(
                f"t{i}",
                category=list(ThreadCategory)[i % 4],
                karma_weight=float(i * 7 % 101),
                payoff_debt=float(i * 13),
                first_chapter=i,
                last_mentioned_chapter=i * 2,
                mention_count=i * 3,
                progress_count=i % 5,
            )
            for i in range(40)
        ]

        for thread in threads:
            for chapter in (0, 10, 80, 500):
                physics = calculator.calculate(thread, chapter)
                assert 0 <= physics.mass <= 100
                assert 0 <= physics.entropy <= 100
                assert physics.urgency >= 0
                assert physics.distance >= 0

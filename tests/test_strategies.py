"""Tests for Command Center strategies and the strategy registry."""

import pytest

from models import Attack, CORRECTIONS, SLOT_COUNT
from state import RandomSource, create_board
from strategies import (
    AVOIDING_DECOY, CENTRE_SLOTS, HONEST, STRATEGY_MAP, UNIFORM_DECOY,
    BayesianStrategy, DecoyStrategy, EvasiveStrategy, RandomStrategy, Strategy,
    UnknownStrategyError, create_strategy, get_strategy,
)
from conftest import board_at


def _play_many(strategy, rng, rounds=500):
    """Drive a strategy through launch/observe/guide with random enemy attacks."""
    results = []
    for _ in range(rounds):
        board = create_board(rng)
        attack = strategy.launch(board, rng)
        enemy = Attack(source=rng.next_int(SLOT_COUNT), target=rng.next_int(SLOT_COUNT))
        strategy.observe(enemy)
        correction = strategy.guide(attack, rng)
        results.append((board, attack, enemy, correction))
    return results


class TestStrategyBase:
    def test_launch_and_guide_are_abstract(self, zero_rng):
        base = Strategy()
        with pytest.raises(NotImplementedError):
            base.launch(board_at(0), zero_rng)
        with pytest.raises(NotImplementedError):
            base.guide(Attack(0, 0), zero_rng)

    def test_observe_and_reset_default_to_no_op(self):
        base = Strategy()
        assert base.observe(Attack(1, 2)) is None
        assert base.reset() is None

    @pytest.mark.parametrize("name", sorted(STRATEGY_MAP))
    def test_every_strategy_plays_legally(self, name):
        strategy = create_strategy(name)
        for board, attack, _, correction in _play_many(strategy, RandomSource(len(name))):
            assert 0 <= attack.source < SLOT_COUNT
            assert 0 <= attack.target < SLOT_COUNT
            assert correction in CORRECTIONS


class TestRandomStrategy:
    def test_fires_from_flagship(self, zero_rng):
        attack = RandomStrategy().launch(board_at(3), zero_rng)
        assert attack == Attack(source=3, target=0)

    def test_guide_is_random_correction(self, zero_rng):
        assert RandomStrategy().guide(Attack(3, 0), zero_rng) == -1

    def test_target_covers_board(self, rng):
        strategy = RandomStrategy()
        targets = {strategy.launch(board_at(0), rng).target for _ in range(300)}
        assert targets == set(range(SLOT_COUNT))

    def test_always_reveals_flagship(self, rng):
        for board, attack, _, _ in _play_many(RandomStrategy(), rng, rounds=100):
            assert attack.source == board.flagship


class TestDecoyStrategy:
    def test_never_fires_from_flagship(self, zero_rng):
        attack = DecoyStrategy().launch(board_at(0), zero_rng)
        assert attack.source == 1
        assert attack.target == 0

    def test_avoids_last_attacked_slot(self, zero_rng):
        decoy = DecoyStrategy()
        decoy.observe(Attack(source=3, target=1))
        assert decoy.attacked_slot == 1
        assert decoy.launch(board_at(0), zero_rng).source == 2

    def test_source_rule_holds_over_many_rounds(self, rng):
        decoy = DecoyStrategy()
        for _ in range(1000):
            board = create_board(rng)
            attacked = decoy.attacked_slot
            attack = decoy.launch(board, rng)
            assert attack.source != board.flagship
            assert attack.source != attacked
            decoy.observe(Attack(source=rng.next_int(SLOT_COUNT), target=rng.next_int(SLOT_COUNT)))
            decoy.guide(attack, rng)

    def test_flagship_and_attacked_slot_can_coincide(self, zero_rng):
        decoy = DecoyStrategy()
        decoy.observe(Attack(source=4, target=0))
        assert decoy.launch(board_at(0), zero_rng).source == 1

    @pytest.mark.parametrize("target", [0, SLOT_COUNT - 1])
    def test_holds_course_at_edges(self, rng, target):
        decoy = DecoyStrategy()
        assert all(decoy.guide(Attack(2, target), rng) == 0 for _ in range(50))

    @pytest.mark.parametrize("target", CENTRE_SLOTS)
    def test_corrects_at_random_in_centre(self, rng, target):
        decoy = DecoyStrategy()
        seen = {decoy.guide(Attack(0, target), rng) for _ in range(200)}
        assert seen == set(CORRECTIONS)

    def test_never_misses_the_board(self, rng):
        for _, attack, _, correction in _play_many(DecoyStrategy(), rng):
            assert 0 <= attack.target + correction < SLOT_COUNT

    def test_reset_forgets_attacked_slot(self):
        decoy = DecoyStrategy()
        decoy.observe(Attack(0, 2))
        decoy.reset()
        assert decoy.attacked_slot is None


class TestEvasiveStrategy:
    def test_launch_targets_centre_from_decoy(self, zero_rng):
        attack = EvasiveStrategy().launch(board_at(0), zero_rng)
        assert attack == Attack(source=1, target=CENTRE_SLOTS[0])

    def test_targets_only_centre(self, rng):
        evasive = EvasiveStrategy()
        for _ in range(200):
            board = create_board(rng)
            attack = evasive.launch(board, rng)
            assert attack.target in CENTRE_SLOTS
            assert attack.source != board.flagship

    def test_steers_away_from_lower_source(self, zero_rng):
        evasive = EvasiveStrategy()
        evasive.observe(Attack(source=1, target=4))
        assert evasive.guide(Attack(0, 3), zero_rng) == 1

    def test_steers_away_from_higher_source(self, zero_rng):
        evasive = EvasiveStrategy()
        evasive.observe(Attack(source=3, target=4))
        assert evasive.guide(Attack(0, 1), zero_rng) == -1

    def test_random_when_target_is_source(self, rng):
        evasive = EvasiveStrategy()
        evasive.observe(Attack(source=2, target=4))
        seen = {evasive.guide(Attack(0, 2), rng) for _ in range(200)}
        assert seen == set(CORRECTIONS)

    def test_without_observation_stays_on_board(self, rng):
        evasive = EvasiveStrategy()
        for target in range(SLOT_COUNT):
            for _ in range(20):
                assert 0 <= target + evasive.guide(Attack(0, target), rng) < SLOT_COUNT

    def test_reset(self):
        evasive = EvasiveStrategy()
        evasive.observe(Attack(3, 3))
        evasive.reset()
        assert evasive.enemy_source is None


class TestBayesianStrategy:
    def test_uniform_priors_without_history(self):
        weights = BayesianStrategy().model_weights()
        assert weights[HONEST] == pytest.approx(1 / 3)
        assert weights[UNIFORM_DECOY] == pytest.approx(1 / 3)
        assert weights[AVOIDING_DECOY] == pytest.approx(1 / 3)

    def test_rejects_unknown_explanation(self):
        with pytest.raises(ValueError):
            BayesianStrategy({"psychic": 1.0})

    def test_rejects_bad_priors(self):
        with pytest.raises(ValueError):
            BayesianStrategy({HONEST: -1.0, UNIFORM_DECOY: 1.0})
        with pytest.raises(ValueError):
            BayesianStrategy({HONEST: 0.0})

    def test_overlap_rules_out_avoiding_decoy(self, zero_rng):
        bayes = BayesianStrategy()
        attack = bayes.launch(board_at(0), zero_rng)
        bayes.observe(Attack(source=attack.target, target=0))
        assert bayes.samples == 1
        assert bayes.overlaps == 1
        weights = bayes.model_weights()
        assert weights[AVOIDING_DECOY] == 0.0
        assert weights[HONEST] == pytest.approx(0.5)
        assert weights[UNIFORM_DECOY] == pytest.approx(0.5)

    def test_no_overlap_history_favours_avoiding_decoy(self, zero_rng):
        bayes = BayesianStrategy()
        for _ in range(30):
            attack = bayes.launch(board_at(0), zero_rng)
            bayes.observe(Attack(source=attack.target + 2, target=0))
            bayes.guide(attack, zero_rng)
        assert bayes.samples == 30
        assert bayes.overlaps == 0
        assert bayes.model_weights()[AVOIDING_DECOY] > 0.99

    def test_long_history_does_not_underflow(self):
        bayes = BayesianStrategy()
        bayes.samples = 100000
        weights = bayes.model_weights()
        assert weights[AVOIDING_DECOY] == pytest.approx(1.0)
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_only_ruled_out_explanation_falls_back(self):
        bayes = BayesianStrategy({AVOIDING_DECOY: 1.0})
        bayes.samples, bayes.overlaps = 3, 1
        assert bayes.model_weights()[UNIFORM_DECOY] == 1.0

    def test_flagship_distribution_sums_to_one(self):
        bayes = BayesianStrategy()
        for source in range(SLOT_COUNT):
            for seen in [None, *range(SLOT_COUNT)]:
                assert sum(bayes.flagship_distribution(source, seen)) == pytest.approx(1.0)

    def test_honest_prior_points_at_source(self):
        bayes = BayesianStrategy({HONEST: 1.0})
        belief = bayes.flagship_distribution(source=3, seen=None)
        assert belief[3] == pytest.approx(1.0)

    def test_avoiding_decoy_rules_out_source_and_seen(self):
        bayes = BayesianStrategy({AVOIDING_DECOY: 1.0})
        belief = bayes.flagship_distribution(source=3, seen=1)
        assert belief[3] == 0.0
        # Flagship on the slot we targeted leaves four candidate sources, elsewhere three
        assert belief[0] > belief[1] > 0.0
        assert belief[0] == pytest.approx(belief[2])
        assert belief[0] == pytest.approx(belief[4])

    def test_steers_toward_honest_source(self, zero_rng):
        bayes = BayesianStrategy({HONEST: 1.0})
        attack = bayes.launch(board_at(0), zero_rng)
        bayes.observe(Attack(source=attack.target + 1, target=4))
        assert bayes.guide(attack, zero_rng) == 1

    def test_steers_off_source_against_avoiding_decoy(self, zero_rng):
        bayes = BayesianStrategy()
        for _ in range(30):
            attack = bayes.launch(board_at(0), zero_rng)
            bayes.observe(Attack(source=attack.target + 1, target=0))
            correction = bayes.guide(attack, zero_rng)
        # Converged: neither the declared source nor our own target holds the flagship
        assert attack.target + correction == attack.target - 1

    def test_side_b_aims_at_most_probable_slot(self, zero_rng):
        bayes = BayesianStrategy()
        bayes.observe(Attack(source=4, target=2))
        attack = bayes.launch(board_at(0), zero_rng)
        # Slot 4 is the most probable; the target is pulled in so it can still be reached
        assert attack.target == CENTRE_SLOTS[-1]
        assert bayes.guide(attack, zero_rng) == 1

    def test_first_observation_on_side_b_is_not_a_sample(self):
        bayes = BayesianStrategy()
        bayes.observe(Attack(source=0, target=0))
        assert bayes.samples == 0

    def test_guide_clears_trial_state(self, zero_rng):
        bayes = BayesianStrategy()
        attack = bayes.launch(board_at(0), zero_rng)
        bayes.observe(Attack(3, 3))
        bayes.guide(attack, zero_rng)
        assert bayes.belief is None

    def test_never_fires_from_flagship(self, rng):
        for board, attack, _, _ in _play_many(BayesianStrategy(), rng, rounds=200):
            assert attack.source != board.flagship

    def test_reset(self, zero_rng):
        bayes = BayesianStrategy()
        attack = bayes.launch(board_at(0), zero_rng)
        bayes.observe(Attack(attack.target, 0))
        bayes.reset()
        assert bayes.samples == 0
        assert bayes.overlaps == 0
        assert bayes.belief is None


class TestRegistry:
    def test_names(self):
        assert set(STRATEGY_MAP) == {"random", "decoy", "evasive", "bayesian"}

    def test_get_strategy(self):
        assert get_strategy("decoy") is DecoyStrategy
        assert get_strategy("evasive") is EvasiveStrategy

    def test_unknown_name(self):
        with pytest.raises(UnknownStrategyError, match="Unknown strategy"):
            get_strategy("kamikaze")

    def test_unknown_is_a_value_error(self):
        with pytest.raises(ValueError):
            create_strategy("kamikaze")

    def test_create_returns_fresh_instances(self):
        assert create_strategy("decoy") is not create_strategy("decoy")

    def test_repr(self):
        assert repr(BayesianStrategy()) == "BayesianStrategy(name='bayesian')"

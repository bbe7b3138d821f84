import math

import pytest

from sweepevo.environment import EnvConfig, EnvironmentAdapter
from sweepevo.policy import MLPPolicy, PolicyTopology
from tests.fakes import (
    FirstLegalPolicy,
    always_lose_factory,
    always_win_factory,
    endless_factory,
)


class TestEvaluate:
    def test_always_win(self, make_genome, small_env):
        adapter = EnvironmentAdapter(FirstLegalPolicy(), environment_factory=always_win_factory)
        genome = make_genome()

        result = adapter.evaluate(genome, small_env)

        assert result.victory is True
        assert result.episodes_played == 1
        assert result.genome is genome
        # step reward plus efficiency bonus for a one-step win
        assert result.score == pytest.approx(1.0 + small_env.victory_bonus_scale * 4)

    def test_loss_is_a_normal_outcome(self, make_genome, small_env):
        adapter = EnvironmentAdapter(FirstLegalPolicy(), environment_factory=always_lose_factory)

        result = adapter.evaluate(make_genome(), small_env)

        assert result.victory is False
        assert result.score == -5.0

    def test_score_is_mean_over_episodes(self, make_genome):
        env_config = EnvConfig(rows=2, cols=2, mines=1, episodes_per_genome=3)
        adapter = EnvironmentAdapter(FirstLegalPolicy(), environment_factory=always_lose_factory)

        result = adapter.evaluate(make_genome(), env_config)

        assert result.episodes_played == 3
        assert result.score == -5.0
        assert adapter.environment_for(env_config).resets == 3

    def test_step_budget(self, make_genome):
        env_config = EnvConfig(rows=2, cols=3, mines=1, step_budget_factor=1.5)
        adapter = EnvironmentAdapter(FirstLegalPolicy(), environment_factory=endless_factory)

        outcome = adapter.play_episode(
            make_genome(), adapter.environment_for(env_config), env_config
        )

        assert outcome.steps == math.ceil(6 * 1.5)
        assert not outcome.victory
        assert outcome.reward == pytest.approx(0.5 * outcome.steps)

    def test_policy_only_sees_masked_choices(self, make_genome, small_env):
        policy = FirstLegalPolicy()
        adapter = EnvironmentAdapter(policy, environment_factory=endless_factory)

        adapter.evaluate(make_genome(), small_env)

        env = adapter.environment_for(small_env)
        assert all(not mask[0] for mask in policy.masks)
        assert 0 not in env.actions

    def test_environment_reused_per_config(self, small_env):
        adapter = EnvironmentAdapter(FirstLegalPolicy(), environment_factory=always_win_factory)

        assert adapter.environment_for(small_env) is adapter.environment_for(small_env)


def test_real_game_with_mlp_policy(rng):
    topology = PolicyTopology(rows=4, cols=4, hidden_units=(16,))
    env_config = EnvConfig(rows=4, cols=4, mines=2, episodes_per_genome=2)
    adapter = EnvironmentAdapter(MLPPolicy(topology), rng=rng)

    result = adapter.evaluate(topology.random_genome(rng), env_config)

    assert result.episodes_played == 2
    assert math.isfinite(result.score)

from sweepevo.policy.encoding import board_action_values, encode_observation
from sweepevo.policy.mlp import MLPPolicy, mlp_policy_factory
from sweepevo.policy.topology import CHANNELS, PolicyTopology

__all__ = [
    "CHANNELS",
    "MLPPolicy",
    "PolicyTopology",
    "board_action_values",
    "encode_observation",
    "mlp_policy_factory",
]

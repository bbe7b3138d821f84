from sweepevo.genome.models import Genome, LayerWeights
from sweepevo.genome.operators import check_same_topology, crossover, mutate
from sweepevo.genome.stats import WeightStats, weight_stats

__all__ = [
    "Genome",
    "LayerWeights",
    "WeightStats",
    "check_same_topology",
    "crossover",
    "mutate",
    "weight_stats",
]

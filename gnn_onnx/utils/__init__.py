"""
Utilities Module.

This module provides helper functions for:
- Graph validation, relabeling and analysis
- Classification and output-comparison metrics
- Training-curve and drift visualization

Components:
    graph_utils: Graph validation and analysis
    metrics: Node classification and output comparison metrics
    visualization: Plotting tools
"""

from .graph_utils import (
    check_edge_index,
    permute_graph,
    compute_degree_distribution,
    compute_graph_statistics,
    to_undirected
)
from .metrics import (
    EmptyMaskError,
    masked_accuracy,
    prediction_agreement,
    max_abs_difference,
    compare_outputs,
    classification_metrics
)
from .visualization import (
    plot_training_curves,
    plot_logit_differences
)

__all__ = [
    # Graph utils
    'check_edge_index',
    'permute_graph',
    'compute_degree_distribution',
    'compute_graph_statistics',
    'to_undirected',
    # Metrics
    'EmptyMaskError',
    'masked_accuracy',
    'prediction_agreement',
    'max_abs_difference',
    'compare_outputs',
    'classification_metrics',
    # Visualization
    'plot_training_curves',
    'plot_logit_differences',
]

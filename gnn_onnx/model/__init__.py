"""
Model Module for Node Classification.

This module implements the node classifier and its transform layers.

Components:
    - layers.py: PlainTransform / GraphTransform variants
    - classifier.py: NodeClassifier plus config and checkpoint factories

Example:
    >>> from gnn_onnx.model import build_model
    >>>
    >>> # MLP baseline (edge index ignored)
    >>> mlp = build_model(in_channels=1433, hidden_channels=16,
    ...                   out_channels=7, layer_name='Linear', seed=42)
    >>>
    >>> # GCN
    >>> gnn = build_model(in_channels=1433, hidden_channels=16,
    ...                   out_channels=7, layer_name='GCN', seed=42)
    >>> logits = gnn(features, edge_index)
"""

from .classifier import (
    NodeClassifier,
    build_model,
    create_model,
    model_from_checkpoint,
    MODEL_NAMES
)
from .layers import (
    PlainTransform,
    GraphTransform,
    make_transform,
    GRAPH_LAYERS,
    LAYER_KINDS,
    PLAIN_LAYER
)

__all__ = [
    'NodeClassifier',
    'build_model',
    'create_model',
    'model_from_checkpoint',
    'MODEL_NAMES',
    'PlainTransform',
    'GraphTransform',
    'make_transform',
    'GRAPH_LAYERS',
    'LAYER_KINDS',
    'PLAIN_LAYER',
]

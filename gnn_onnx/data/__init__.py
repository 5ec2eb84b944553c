"""
Data Module for Node Classification.

This module handles:
1. Loading Planetoid citation graphs (Cora by default)
2. Generating seeded synthetic graphs for offline work
3. Validating and building train/val/test split masks

Classes:
    NodeClassificationDataset: Features, edges, labels and masks

Example:
    >>> from gnn_onnx.data import NodeClassificationDataset
    >>>
    >>> dataset = NodeClassificationDataset.from_planetoid('data/Planetoid', 'Cora')
    >>> data = dataset.get_data(device=torch.device('cuda'))
"""

from .dataset import NodeClassificationDataset
from .masks import (
    MaskOverlapError,
    validate_masks,
    make_planetoid_split,
    index_to_mask,
    SPLITS
)

__all__ = [
    'NodeClassificationDataset',
    'MaskOverlapError',
    'validate_masks',
    'make_planetoid_split',
    'index_to_mask',
    'SPLITS',
]

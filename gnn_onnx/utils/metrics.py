"""
Evaluation Metrics Module.

This module provides metrics for node classification and for comparing
two sets of model outputs:
- Masked accuracy: accuracy restricted to a split mask
- Prediction agreement: fraction of nodes with identical argmax
- Output differences: absolute logit / probability deviations
"""

import torch
import torch.nn.functional as F
import numpy as np
from typing import Dict, Optional, Union
from sklearn.metrics import accuracy_score, f1_score

ArrayLike = Union[torch.Tensor, np.ndarray]


class EmptyMaskError(ValueError):
    """Raised when a metric is requested over a mask selecting no nodes."""


def _as_tensor(values: ArrayLike) -> torch.Tensor:
    if isinstance(values, torch.Tensor):
        return values.detach().cpu()
    return torch.from_numpy(np.asarray(values))


def _select(values: torch.Tensor, mask: Optional[ArrayLike], name: str) -> torch.Tensor:
    """Apply a boolean node mask, refusing masks that select nothing."""
    if mask is None:
        if values.shape[0] == 0:
            raise EmptyMaskError(f"{name}: no nodes to evaluate")
        return values

    mask = _as_tensor(mask).bool()
    if mask.shape[0] != values.shape[0]:
        raise ValueError(
            f"{name}: mask has {mask.shape[0]} entries, expected {values.shape[0]}"
        )
    if not bool(mask.any()):
        raise EmptyMaskError(f"{name}: mask selects no nodes")
    return values[mask]


def masked_accuracy(
    logits: ArrayLike,
    labels: ArrayLike,
    mask: Optional[ArrayLike] = None
) -> float:
    """
    Compute classification accuracy over the nodes selected by ``mask``.

    Args:
        logits: Per-node class scores [num_nodes, num_classes]
        labels: Ground-truth labels [num_nodes]
        mask: Optional boolean node mask [num_nodes]

    Returns:
        Accuracy in [0, 1]

    Raises:
        EmptyMaskError: If the mask selects no nodes
    """
    preds = _select(_as_tensor(logits).argmax(dim=-1), mask, 'accuracy')
    targets = _select(_as_tensor(labels), mask, 'accuracy')
    return (preds == targets).sum().item() / preds.shape[0]


def prediction_agreement(
    logits_a: ArrayLike,
    logits_b: ArrayLike,
    mask: Optional[ArrayLike] = None
) -> float:
    """
    Fraction of nodes whose predicted class (argmax) is the same in both outputs.

    Raises:
        EmptyMaskError: If the mask selects no nodes
    """
    preds_a = _select(_as_tensor(logits_a).argmax(dim=-1), mask, 'agreement')
    preds_b = _select(_as_tensor(logits_b).argmax(dim=-1), mask, 'agreement')
    return (preds_a == preds_b).float().mean().item()


def max_abs_difference(a: ArrayLike, b: ArrayLike) -> float:
    """Elementwise maximum absolute difference between two equally shaped outputs."""
    a = _as_tensor(a).double()
    b = _as_tensor(b).double()
    if a.shape != b.shape:
        raise ValueError(f"Shape mismatch: {list(a.shape)} vs {list(b.shape)}")
    if a.numel() == 0:
        return 0.0
    return (a - b).abs().max().item()


def compare_outputs(
    original: ArrayLike,
    exported: ArrayLike,
    mask: Optional[ArrayLike] = None
) -> Dict[str, float]:
    """
    Summarize the deviation between two logit matrices.

    Args:
        original: Reference logits [num_nodes, num_classes]
        exported: Logits to compare [num_nodes, num_classes]
        mask: Optional node mask for the agreement metric

    Returns:
        Dictionary with max/mean logit difference, max softmax difference
        and top-1 agreement
    """
    original = _as_tensor(original).float()
    exported = _as_tensor(exported).float()

    diff = (original.double() - exported.double()).abs()
    prob_diff = (F.softmax(original.double(), dim=-1) - F.softmax(exported.double(), dim=-1)).abs()

    return {
        'max_abs_diff': diff.max().item() if diff.numel() else 0.0,
        'mean_abs_diff': diff.mean().item() if diff.numel() else 0.0,
        'max_prob_diff': prob_diff.max().item() if prob_diff.numel() else 0.0,
        'agreement': prediction_agreement(original, exported, mask),
    }


def classification_metrics(
    logits: ArrayLike,
    labels: ArrayLike,
    mask: Optional[ArrayLike] = None
) -> Dict[str, float]:
    """
    Accuracy and macro-F1 over the masked nodes.

    Returns:
        Dictionary with 'accuracy', 'macro_f1' and 'num_nodes'
    """
    preds = _select(_as_tensor(logits).argmax(dim=-1), mask, 'classification').numpy()
    targets = _select(_as_tensor(labels), mask, 'classification').numpy()

    return {
        'accuracy': float(accuracy_score(targets, preds)),
        'macro_f1': float(f1_score(targets, preds, average='macro', zero_division=0)),
        'num_nodes': int(len(targets)),
    }

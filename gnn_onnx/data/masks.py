"""
Split Mask Utilities.

Train/validation/test masks are boolean vectors over node indices. This
module validates them and builds Planetoid-style splits for synthetic graphs.
"""

import torch
from typing import Dict, Optional

from ..utils.metrics import EmptyMaskError

SPLITS = ('train', 'val', 'test')


class MaskOverlapError(ValueError):
    """Raised when two split masks select the same node."""


def validate_masks(
    masks: Dict[str, torch.Tensor],
    num_nodes: int,
    require_disjoint: bool = True
) -> None:
    """
    Validate split masks.

    Args:
        masks: Mapping from split name ('train', 'val', 'test') to boolean mask
        num_nodes: Total number of nodes
        require_disjoint: Whether overlapping masks are an error

    Raises:
        ValueError: If a mask has the wrong dtype or length
        EmptyMaskError: If the train or val mask selects no nodes
        MaskOverlapError: If require_disjoint and two masks overlap
    """
    for name in SPLITS:
        if name not in masks:
            raise ValueError(f"Missing '{name}' mask")

    for name, mask in masks.items():
        if mask.dtype != torch.bool:
            raise ValueError(f"'{name}' mask must be boolean, got {mask.dtype}")
        if mask.dim() != 1 or mask.shape[0] != num_nodes:
            raise ValueError(
                f"'{name}' mask has shape {list(mask.shape)}, expected [{num_nodes}]"
            )

    for name in ('train', 'val'):
        if not bool(masks[name].any()):
            raise EmptyMaskError(f"'{name}' mask selects no nodes")

    if require_disjoint:
        for i, a in enumerate(SPLITS):
            for b in SPLITS[i + 1:]:
                overlap = int((masks[a] & masks[b]).sum())
                if overlap:
                    raise MaskOverlapError(
                        f"'{a}' and '{b}' masks share {overlap} nodes"
                    )


def index_to_mask(index: torch.Tensor, num_nodes: int) -> torch.Tensor:
    """Convert a node index vector to a boolean mask."""
    mask = torch.zeros(num_nodes, dtype=torch.bool)
    mask[index] = True
    return mask


def make_planetoid_split(
    labels: torch.Tensor,
    num_classes: int,
    train_per_class: int = 20,
    num_val: int = 500,
    num_test: int = 1000,
    generator: Optional[torch.Generator] = None
) -> Dict[str, torch.Tensor]:
    """
    Build disjoint masks: a fixed number of training nodes per class, then
    validation and test nodes drawn from the remainder.

    Args:
        labels: Node labels [num_nodes]
        num_classes: Number of classes
        train_per_class: Training nodes per class
        num_val: Number of validation nodes
        num_test: Number of test nodes
        generator: Random generator for the shuffle

    Returns:
        Dictionary of boolean masks keyed by split name
    """
    num_nodes = labels.shape[0]
    perm = torch.randperm(num_nodes, generator=generator)

    train_parts = []
    for c in range(num_classes):
        members = perm[labels[perm] == c]
        if members.numel() < train_per_class:
            raise ValueError(
                f"Class {c} has {members.numel()} nodes, need {train_per_class} for training"
            )
        train_parts.append(members[:train_per_class])
    train_index = torch.cat(train_parts)

    train_mask = index_to_mask(train_index, num_nodes)
    remaining = perm[~train_mask[perm]]

    if remaining.numel() < num_val + num_test:
        raise ValueError(
            f"Only {remaining.numel()} nodes left after training split, "
            f"need {num_val + num_test} for val+test"
        )

    return {
        'train': train_mask,
        'val': index_to_mask(remaining[:num_val], num_nodes),
        'test': index_to_mask(remaining[num_val:num_val + num_test], num_nodes),
    }

"""
Visualization Module.

This module provides plotting utilities for:
- Training curves (loss and accuracy per split)
- Distribution of logit differences between PyTorch and ONNX Runtime
"""

import numpy as np
from typing import Optional, Union
import json

import torch


def plot_training_curves(
    metrics_path: str,
    output_path: Optional[str] = None,
    show: bool = True
) -> None:
    """
    Plot training curves from logged metrics.

    Args:
        metrics_path: Path to epoch_metrics.json
        output_path: Optional path to save figure
        show: Whether to display plot
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        print("matplotlib not installed. Install with: pip install matplotlib")
        return

    with open(metrics_path, 'r') as f:
        metrics = json.load(f)

    epochs = [m['epoch'] for m in metrics]

    fig, axes = plt.subplots(1, 2, figsize=(12, 4))

    for ax, key, title in ((axes[0], 'loss', 'Loss'), (axes[1], 'acc', 'Accuracy')):
        ax.plot(epochs, [m.get(f'train_{key}') for m in metrics], label=f'Train {title}', marker='.')
        if f'val_{key}' in metrics[0]:
            ax.plot(epochs, [m.get(f'val_{key}') for m in metrics], label=f'Val {title}', marker='.')
        ax.set_xlabel('Epoch')
        ax.set_ylabel(title)
        ax.set_title(f'Training {title}')
        ax.legend()
        ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if output_path:
        plt.savefig(output_path, dpi=150, bbox_inches='tight')
        print(f"Saved figure to {output_path}")

    if show:
        plt.show()

    plt.close(fig)


def plot_logit_differences(
    original: Union[torch.Tensor, np.ndarray],
    exported: Union[torch.Tensor, np.ndarray],
    output_path: Optional[str] = None,
    bins: int = 50,
    show: bool = True
) -> None:
    """
    Histogram of per-element absolute differences between two logit matrices.

    Args:
        original: PyTorch logits [num_nodes, num_classes]
        exported: ONNX Runtime logits [num_nodes, num_classes]
        output_path: Path to save figure
        bins: Number of histogram bins
        show: Whether to display
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        print("matplotlib not installed. Install with: pip install matplotlib")
        return

    if isinstance(original, torch.Tensor):
        original = original.detach().cpu().numpy()
    if isinstance(exported, torch.Tensor):
        exported = exported.detach().cpu().numpy()

    diffs = np.abs(original.astype(np.float64) - exported.astype(np.float64)).ravel()

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.hist(diffs, bins=bins, color='steelblue', alpha=0.8)
    ax.set_yscale('log')
    ax.set_xlabel('|logit_torch - logit_onnx|')
    ax.set_ylabel('Count')
    ax.set_title(f'Logit Differences (max={diffs.max() if diffs.size else 0.0:.2e})')
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if output_path:
        plt.savefig(output_path, dpi=150, bbox_inches='tight')
        print(f"Saved figure to {output_path}")

    if show:
        plt.show()

    plt.close(fig)

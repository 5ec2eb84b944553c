#!/usr/bin/env python3
"""
Evaluation Script.

This script evaluates trained node classifiers:
- Accuracy and macro-F1 per split
- Dataset statistics
- Training curve plots

Usage:
    python scripts/evaluate.py --checkpoint checkpoints/NodeLevelGNN.pt
    python scripts/evaluate.py --model MLP --visualize
"""

import argparse
import sys
import json
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import torch

from config import load_config
from gnn_onnx.data import NodeClassificationDataset
from gnn_onnx.inference import run_original
from gnn_onnx.training import load_model, checkpoint_path_for
from gnn_onnx.utils.metrics import classification_metrics, EmptyMaskError
from gnn_onnx.utils.visualization import plot_training_curves


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Evaluate node classifier')

    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to configuration file'
    )
    parser.add_argument(
        '--checkpoint', type=str, default=None,
        help='Path to model checkpoint (default: checkpoint of --model)'
    )
    parser.add_argument(
        '--model', type=str, default='GNN',
        choices=['MLP', 'GNN'],
        help='Model whose checkpoint to use when --checkpoint is not given'
    )
    parser.add_argument(
        '--output-dir', type=str, default='evaluation',
        help='Output directory for results'
    )
    parser.add_argument(
        '--synthetic', action='store_true',
        help='Use the synthetic graph'
    )
    parser.add_argument(
        '--visualize', action='store_true',
        help='Generate training curve plots'
    )
    parser.add_argument(
        '--device', type=str, default='cpu',
        help='Device for evaluation'
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main evaluation function."""
    args = parse_args(argv)

    print("=" * 60)
    print("Node Classification Evaluation")
    print("=" * 60)

    device = torch.device(args.device if torch.cuda.is_available() else 'cpu')
    print(f"Device: {device}")

    config = load_config(args.config)
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    checkpoint = args.checkpoint or str(checkpoint_path_for(config, args.model))
    model = load_model(checkpoint, device=device)
    dataset = NodeClassificationDataset.from_config(config, synthetic=args.synthetic)

    stats = dataset.get_statistics()
    print("\nGraph statistics:")
    print(f"  Nodes: {stats['num_nodes']:,}")
    print(f"  Edges: {stats['num_edges']:,}")
    print(f"  Avg degree: {stats['avg_degree']:.2f}")
    print(f"  Isolated nodes: {stats['isolated_nodes']}")
    print(f"  Connected components: {stats['num_components']}")

    logits = run_original(model, dataset.features, dataset.edge_index)

    print("\nClassification metrics")
    print("-" * 40)
    split_metrics = {}
    for split, mask in dataset.masks.items():
        try:
            metrics = classification_metrics(logits, dataset.labels, mask)
        except EmptyMaskError:
            print(f"  {split:>5}: (empty split)")
            continue
        split_metrics[split] = metrics
        print(f"  {split:>5}: accuracy={metrics['accuracy']:.4f}  "
              f"macro_f1={metrics['macro_f1']:.4f}  nodes={metrics['num_nodes']}")

    results = {
        'checkpoint': checkpoint,
        'hparams': model.hparams(),
        'statistics': stats,
        'metrics': split_metrics,
    }

    with open(output_dir / 'evaluation_results.json', 'w') as f:
        json.dump(results, f, indent=2)

    print(f"\nResults saved to: {output_dir / 'evaluation_results.json'}")

    if args.visualize:
        metrics_path = Path(config['paths'].get('logs', 'logs')) / args.model / 'epoch_metrics.json'
        if metrics_path.exists():
            plot_training_curves(
                str(metrics_path),
                output_path=str(output_dir / f'training_curves_{args.model}.png'),
                show=False
            )
        else:
            print(f"  Warning: no training log at {metrics_path}")

    print("=" * 60)


if __name__ == '__main__':
    main()

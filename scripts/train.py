#!/usr/bin/env python3
"""
Node Classification Training Script.

This script trains the MLP baseline and/or the GNN on a citation graph.
A model whose checkpoint already exists is loaded instead of retrained.

Usage:
    python scripts/train.py
    python scripts/train.py --model GNN --epochs 100
    python scripts/train.py --synthetic --force-retrain
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
from gnn_onnx.training import train_or_load


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Train node classifiers')

    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to configuration file (default: config/default.yaml)'
    )
    parser.add_argument(
        '--model', type=str, default='all',
        choices=['MLP', 'GNN', 'all'],
        help='Which model to train'
    )
    parser.add_argument(
        '--layer', type=str, default=None,
        help='Graph layer for the GNN (overrides config model.layer_name)'
    )
    parser.add_argument(
        '--epochs', type=int, default=None,
        help='Number of epochs (overrides config)'
    )
    parser.add_argument(
        '--lr', type=float, default=None,
        help='Learning rate (overrides config)'
    )
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Random seed (overrides config)'
    )
    parser.add_argument(
        '--device', type=str, default='cpu',
        help='Device for training (cuda or cpu)'
    )
    parser.add_argument(
        '--synthetic', action='store_true',
        help='Use the synthetic graph instead of downloading Planetoid'
    )
    parser.add_argument(
        '--force-retrain', action='store_true',
        help='Train even if a checkpoint exists'
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main training function."""
    args = parse_args(argv)

    print("=" * 60)
    print("Node Classification Training")
    print("=" * 60)

    device = torch.device(args.device)
    if device.type == 'cuda' and not torch.cuda.is_available():
        print("CUDA not available, falling back to CPU")
        device = torch.device('cpu')

    config = load_config(args.config)

    if args.layer is not None:
        config['model']['layer_name'] = args.layer
    if args.epochs is not None:
        config['training']['epochs'] = args.epochs
    if args.lr is not None:
        config['training']['learning_rate'] = args.lr
    if args.seed is not None:
        config['seed'] = args.seed

    dataset = NodeClassificationDataset.from_config(config, synthetic=args.synthetic)
    print(f"\nDataset: {dataset.name}")
    print(f"  Nodes: {dataset.num_nodes:,}")
    print(f"  Edges: {dataset.num_edges:,}")
    print(f"  Features: {dataset.num_features}")
    print(f"  Classes: {dataset.num_classes}")

    model_names = ['MLP', 'GNN'] if args.model == 'all' else [args.model]

    results = {}
    for model_name in model_names:
        print()
        _, accuracies = train_or_load(
            dataset, config,
            model_name=model_name,
            device=device,
            force_retrain=args.force_retrain
        )
        results[model_name] = accuracies

    logs_dir = Path(config['paths'].get('logs', 'logs'))
    logs_dir.mkdir(parents=True, exist_ok=True)
    with open(logs_dir / 'results.json', 'w') as f:
        json.dump(results, f, indent=2)

    print("\n" + "=" * 60)
    print("Results")
    print("=" * 60)
    for model_name, accuracies in results.items():
        print(f"{model_name:>4}: train={accuracies['train']:.2%}  "
              f"val={accuracies['val']:.2%}  test={accuracies['test']:.2%}")
    print(f"\nResults saved to: {logs_dir / 'results.json'}")


if __name__ == '__main__':
    main()

#!/usr/bin/env python3
"""
ONNX Verification Script.

Runs the trained PyTorch model and its exported ONNX artifact on the same
dataset inputs and checks that the outputs agree within the configured
tolerances. Exits with status 1 when drift exceeds tolerance.

Usage:
    python scripts/verify_onnx.py --checkpoint checkpoints/NodeLevelGNN.pt \
        --artifact exports/gnn_model.onnx
    python scripts/verify_onnx.py --model GNN --plot
"""

import argparse
import sys
import json
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import load_config
from gnn_onnx.data import NodeClassificationDataset
from gnn_onnx.inference import OnnxModelSession, compare_logits, tolerances_from_config, run_original
from gnn_onnx.training import load_model, checkpoint_path_for
from gnn_onnx.utils.metrics import masked_accuracy
from gnn_onnx.utils.visualization import plot_logit_differences


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Verify ONNX artifact against PyTorch model')

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
        '--artifact', type=str, default=None,
        help='Path to .onnx artifact (default: <exports>/<export.filename>)'
    )
    parser.add_argument(
        '--synthetic', action='store_true',
        help='Use the synthetic graph'
    )
    parser.add_argument(
        '--plot', action='store_true',
        help='Save a histogram of logit differences'
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main verification function."""
    args = parse_args(argv)

    print("=" * 60)
    print("ONNX Numerical Equivalence Check")
    print("=" * 60)

    config = load_config(args.config)
    exports_dir = Path(config['paths'].get('exports', 'exports'))

    checkpoint = args.checkpoint or str(checkpoint_path_for(config, args.model))
    artifact = Path(args.artifact) if args.artifact else (
        exports_dir / config['export'].get('filename', 'gnn_model.onnx')
    )

    model = load_model(checkpoint)
    dataset = NodeClassificationDataset.from_config(config, synthetic=args.synthetic)

    print(f"\nCheckpoint: {checkpoint}")
    print(f"Artifact:   {artifact}")
    print(f"Dataset:    {dataset.name} ({dataset.num_nodes:,} nodes, {dataset.num_edges:,} edges)\n")

    test_mask = dataset.masks['test']
    eval_mask = test_mask if bool(test_mask.any()) else None

    original = run_original(model, dataset.features, dataset.edge_index)
    with OnnxModelSession(artifact) as session:
        exported = session.run(dataset.features, dataset.edge_index)

    report = compare_logits(original, exported, mask=eval_mask, **tolerances_from_config(config))
    print(report.summary())

    if eval_mask is not None:
        print(f"\nTest accuracy (PyTorch):      {masked_accuracy(original, dataset.labels, eval_mask):.4f}")
        print(f"Test accuracy (ONNX Runtime): {masked_accuracy(exported, dataset.labels, eval_mask):.4f}")

    report_path = artifact.parent / 'verification_report.json'
    with open(report_path, 'w') as f:
        json.dump(report.to_dict(), f, indent=2)
    print(f"\nReport saved to: {report_path}")

    if args.plot:
        plot_logit_differences(
            original, exported,
            output_path=str(artifact.parent / 'logit_differences.png'),
            show=False
        )

    print("=" * 60)
    if report.passed:
        print("✓ ONNX artifact matches the PyTorch model")
        return 0

    print("✗ ONNX artifact deviates from the PyTorch model beyond tolerance")
    return 1


if __name__ == '__main__':
    sys.exit(main())

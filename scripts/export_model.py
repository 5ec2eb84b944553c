#!/usr/bin/env python3
"""
Model Export Script.

This script exports a trained node classifier to ONNX, using the dataset's
own feature matrix and edge index as example inputs so the artifact declares
their exact shapes:

    nodes  float32 [node_count, feature_dim]
    edges  int64   [2, edge_count]
    logits float32 [node_count, class_count]

Usage:
    python scripts/export_model.py --checkpoint checkpoints/NodeLevelGNN.pt
    python scripts/export_model.py --checkpoint checkpoints/NodeLevelGNN.pt --dynamic
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import load_config
from gnn_onnx.data import NodeClassificationDataset
from gnn_onnx.export import export_onnx, read_signature, write_export_metadata
from gnn_onnx.training import load_model, checkpoint_path_for


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Export node classifier to ONNX')

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
        help='Model whose checkpoint to export when --checkpoint is not given'
    )
    parser.add_argument(
        '--output', type=str, default=None,
        help='Output .onnx path (default: <exports>/<export.filename>)'
    )
    parser.add_argument(
        '--opset', type=int, default=None,
        help='ONNX opset version (overrides config)'
    )
    parser.add_argument(
        '--dynamic', action='store_true',
        help='Export with symbolic node and edge counts'
    )
    parser.add_argument(
        '--synthetic', action='store_true',
        help='Use the synthetic graph for example inputs'
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main export function."""
    args = parse_args(argv)

    print("=" * 60)
    print("ONNX Model Export")
    print("=" * 60)

    config = load_config(args.config)
    export_config = config.get('export', {})

    checkpoint = args.checkpoint or str(checkpoint_path_for(config, args.model))
    print(f"\nLoading checkpoint: {checkpoint}")
    model = load_model(checkpoint)
    print(f"Model loaded: {model.layer_name}, {model.count_parameters():,} parameters")

    dataset = NodeClassificationDataset.from_config(config, synthetic=args.synthetic)

    output_path = Path(args.output) if args.output else (
        Path(config['paths'].get('exports', 'exports')) / export_config.get('filename', 'gnn_model.onnx')
    )
    opset = args.opset or export_config.get('opset_version', 16)
    dynamic = args.dynamic or export_config.get('dynamic_shapes', False)

    print(f"\nExporting to {output_path} (opset {opset}, dynamic={dynamic})...")
    export_onnx(
        model,
        dataset.features,
        dataset.edge_index,
        output_path,
        opset_version=opset,
        dynamic_shapes=dynamic
    )
    print("  ONNX model verified successfully")

    metadata_path = write_export_metadata(
        output_path, model, opset,
        source_checkpoint=checkpoint,
        extra={'dataset': dataset.name, 'model_name': args.model}
    )

    signature = read_signature(output_path)

    print("\n" + "=" * 60)
    print("Export Complete")
    print("=" * 60)
    print("\nInputs:")
    for spec in signature.inputs:
        print(f"  {spec.name}: {spec.dtype} {spec.shape}")
    print("Outputs:")
    for spec in signature.outputs:
        print(f"  {spec.name}: {spec.dtype} {spec.shape}")

    size_mb = output_path.stat().st_size / (1024 * 1024)
    print(f"\nArtifact: {output_path} ({size_mb:.2f} MB)")
    print(f"Metadata: {metadata_path}")


if __name__ == '__main__':
    main()

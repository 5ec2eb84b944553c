"""
GNN Node Classification with ONNX Export.

This package trains node classifiers (an MLP baseline and a message-passing
GNN) on citation graphs, exports the trained model to ONNX, and verifies
that ONNX Runtime reproduces the PyTorch outputs.

Submodules:
    - data: Planetoid / synthetic datasets and split masks
    - model: NodeClassifier built from Linear or graph transform layers
    - training: Training loop with early stopping and checkpoint reuse
    - export: ONNX export and artifact signature inspection
    - inference: ONNX Runtime session and numerical-equivalence check
    - utils: Graph helpers, metrics and plots

Example:
    >>> from gnn_onnx.data import NodeClassificationDataset
    >>> from gnn_onnx.training import train_or_load
    >>> from gnn_onnx.export import export_onnx
    >>> from gnn_onnx.inference import check_equivalence
"""

__version__ = "1.0.0"

VERSION_INFO = {
    'major': 1,
    'minor': 0,
    'patch': 0,
    'release': 'stable'
}

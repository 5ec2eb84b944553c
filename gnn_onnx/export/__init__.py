"""
Export Module.

Exports trained node classifiers to ONNX and inspects exported artifacts.

Example:
    >>> from gnn_onnx.export import export_onnx, read_signature
    >>>
    >>> path = export_onnx(model, data.x, data.edge_index, 'exports/gnn_model.onnx')
    >>> signature = read_signature(path)
    >>> signature.input('nodes').shape  # [2708, 1433]
"""

from .onnx_export import (
    export_onnx,
    read_signature,
    write_export_metadata,
    ArtifactSignature,
    TensorSpec,
    INPUT_NODES,
    INPUT_EDGES,
    OUTPUT_LOGITS,
    DEFAULT_OPSET
)

__all__ = [
    'export_onnx',
    'read_signature',
    'write_export_metadata',
    'ArtifactSignature',
    'TensorSpec',
    'INPUT_NODES',
    'INPUT_EDGES',
    'OUTPUT_LOGITS',
    'DEFAULT_OPSET',
]

"""
Inference Module.

This module runs exported artifacts through ONNX Runtime and checks them
against the original PyTorch model.

Components:
    OnnxModelSession: Scoped ONNX Runtime session
    check_equivalence: Compare PyTorch and ONNX Runtime outputs

Example:
    >>> from gnn_onnx.inference import check_equivalence
    >>>
    >>> report = check_equivalence(model, 'exports/gnn_model.onnx',
    ...                            data.x, data.edge_index)
    >>> if not report.passed:
    ...     print(report.failures)
"""

from .runtime import OnnxModelSession
from .equivalence import (
    EquivalenceReport,
    ExportSchemaError,
    NumericalDriftError,
    check_equivalence,
    check_equivalence_from_config,
    compare_logits,
    tolerances_from_config,
    run_original
)

__all__ = [
    'OnnxModelSession',
    'EquivalenceReport',
    'ExportSchemaError',
    'NumericalDriftError',
    'check_equivalence',
    'check_equivalence_from_config',
    'compare_logits',
    'tolerances_from_config',
    'run_original',
]

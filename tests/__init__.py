"""
Test Suite for GNN Node Classification and ONNX Export.

This package contains tests for all modules:
- test_data.py: Dataset construction, synthetic graphs and split masks
- test_model.py: Transform layers, forward pass and graph properties
- test_training.py: Training loop, callbacks and checkpoint reuse
- test_export.py: ONNX export and artifact signatures
- test_inference.py: ONNX Runtime sessions and equivalence checks
- test_utils.py: Graph utilities and metrics
- test_integration.py: End-to-end pipeline and scripts
"""

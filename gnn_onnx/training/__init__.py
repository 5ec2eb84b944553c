"""
Training Module for Node Classification.

This module implements the training pipeline including:
- Full-batch training loop with validation
- Early stopping and checkpointing
- Checkpoint reuse keyed by model name
- Logging and metrics tracking

Components:
    NodeClassificationTrainer: Main trainer class
    EarlyStopping: Patience-based early stopping
    ModelCheckpoint: Best-model checkpointing
    TrainingLogger: Logging and metrics tracking

Example:
    >>> from gnn_onnx.training import train_or_load
    >>>
    >>> model, accuracies = train_or_load(dataset, config, model_name='GNN')
    >>> print(accuracies['test'])
"""

from .trainer import (
    NodeClassificationTrainer,
    train_or_load,
    load_model,
    checkpoint_path_for
)
from .callbacks import EarlyStopping, TrainingLogger, ModelCheckpoint

__all__ = [
    'NodeClassificationTrainer',
    'train_or_load',
    'load_model',
    'checkpoint_path_for',
    'EarlyStopping',
    'TrainingLogger',
    'ModelCheckpoint',
]

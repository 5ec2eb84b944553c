"""
Node Classification Trainer Module.

This module implements the training pipeline for node classifiers. It handles:
- Full-batch training loop with cross-entropy on the training mask
- Validation accuracy monitoring
- Early stopping and best-model checkpointing
- Checkpoint reuse keyed by model name (skip retraining)

Design Decisions:
- Full-batch forward pass (citation graphs fit in memory)
- Validation accuracy is the monitored metric
- Seeding is explicit and scoped to the training run; global RNG state is
  restored afterwards
"""

import torch
import torch.nn as nn
from torch.optim import Adam
from torch_geometric.data import Data
from typing import Dict, Optional, Any, Tuple
from pathlib import Path

from ..model.classifier import NodeClassifier, create_model, model_from_checkpoint
from ..utils.metrics import masked_accuracy
from .callbacks import EarlyStopping, ModelCheckpoint, TrainingLogger


def checkpoint_path_for(config: Dict[str, Any], model_name: str) -> Path:
    """Checkpoint file for ``model_name`` under the configured checkpoint directory."""
    checkpoint_dir = Path(config.get('paths', {}).get('checkpoints', 'checkpoints'))
    return checkpoint_dir / f'NodeLevel{model_name}.pt'


class NodeClassificationTrainer:
    """
    Training pipeline for node classification on a single graph.

    Each epoch:
    1. Forward pass over all nodes
    2. Cross-entropy loss on training nodes
    3. Backward pass and optimizer step
    4. Validation accuracy, checkpointing and early stopping

    Example:
        >>> from gnn_onnx.training import NodeClassificationTrainer
        >>> from gnn_onnx.model import create_model
        >>> from config import load_config
        >>>
        >>> config = load_config()
        >>> model = create_model(config, 1433, 7, model_name='GNN')
        >>>
        >>> trainer = NodeClassificationTrainer(
        ...     model=model,
        ...     data=dataset.get_data(),
        ...     config=config,
        ...     model_name='GNN'
        ... )
        >>> best_val_acc = trainer.train(num_epochs=200)
        >>> print(trainer.test())
    """

    def __init__(
        self,
        model: NodeClassifier,
        data: Data,
        config: Dict[str, Any],
        model_name: str = 'GNN',
        seed: Optional[int] = None,
        verbose: bool = True
    ):
        """
        Initialize trainer.

        Args:
            model: Node classifier
            data: PyG Data with x, edge_index, y and split masks (same device as model)
            config: Training configuration dictionary
            model_name: Name used for checkpoint and log files
            seed: Seed for the training run (defaults to config 'seed')
            verbose: Whether to print progress
        """
        self.device = next(model.parameters()).device
        assert data.x.device == self.device, "Data must be on same device as model"

        self.model = model
        self.data = data
        self.config = config
        self.model_name = model_name
        self.seed = config.get('seed') if seed is None else seed
        self.verbose = verbose

        train_config = config.get('training', {})
        self.learning_rate = train_config.get('learning_rate', 0.01)
        self.weight_decay = train_config.get('weight_decay', 0.0)

        self.optimizer = Adam(
            model.parameters(),
            lr=self.learning_rate,
            weight_decay=self.weight_decay
        )
        self.loss_fn = nn.CrossEntropyLoss()

        paths_config = config.get('paths', {})
        self.checkpoint = ModelCheckpoint(
            save_dir=paths_config.get('checkpoints', 'checkpoints'),
            save_best=True,
            mode='max',
            filename_prefix=f'NodeLevel{model_name}'
        )

        self.early_stopping = EarlyStopping(
            patience=train_config.get('early_stopping_patience', 50),
            min_delta=train_config.get('min_delta', 0.0),
            mode='max'
        )

        self.logger = TrainingLogger(
            log_dir=str(Path(paths_config.get('logs', 'logs')) / model_name),
            log_every=train_config.get('log_every', 10),
            verbose=verbose
        )

        self.best_val_acc = 0.0
        self.current_epoch = 0

        if verbose:
            self._print_setup_summary()

    def _print_setup_summary(self):
        """Print training setup summary."""
        print("=" * 60)
        print(f"Node Classification Training: {self.model_name} ({self.model.layer_name})")
        print("=" * 60)
        print(f"Device: {self.device}")
        print(f"Model parameters: {self.model.count_parameters():,}")
        print(f"Nodes: {self.data.num_nodes:,}  Edges: {self.data.edge_index.shape[1]:,}")
        print(f"Train/val/test nodes: {int(self.data.train_mask.sum())}/"
              f"{int(self.data.val_mask.sum())}/{int(self.data.test_mask.sum())}")
        print(f"Learning rate: {self.learning_rate}  Weight decay: {self.weight_decay}")
        print(f"Seed: {self.seed}")
        print("=" * 60)

    def _mask(self, split: str) -> torch.Tensor:
        return getattr(self.data, f'{split}_mask')

    def train_epoch(self) -> Dict[str, float]:
        """
        Train for one epoch.

        Returns:
            Dictionary with training loss and accuracy
        """
        self.model.train()
        self.optimizer.zero_grad()

        logits = self.model(self.data.x, self.data.edge_index)
        mask = self.data.train_mask
        loss = self.loss_fn(logits[mask], self.data.y[mask])

        loss.backward()
        self.optimizer.step()

        return {
            'loss': loss.item(),
            'acc': masked_accuracy(logits.detach(), self.data.y, mask),
        }

    @torch.no_grad()
    def evaluate(self, split: str = 'val') -> Dict[str, float]:
        """
        Evaluate on a split.

        Args:
            split: 'train', 'val' or 'test'

        Returns:
            Dictionary with loss and accuracy

        Raises:
            EmptyMaskError: If the split mask selects no nodes
        """
        self.model.eval()

        logits = self.model(self.data.x, self.data.edge_index)
        mask = self._mask(split)

        acc = masked_accuracy(logits, self.data.y, mask)
        loss = self.loss_fn(logits[mask], self.data.y[mask])

        return {'loss': loss.item(), 'acc': acc}

    def train(self, num_epochs: int) -> float:
        """
        Full training loop.

        The best model (by validation accuracy) is restored at the end.

        Args:
            num_epochs: Maximum number of epochs

        Returns:
            Best validation accuracy achieved
        """
        if self.verbose:
            print(f"\nStarting training for {num_epochs} epochs...")
            print("-" * 60)

        cuda_devices = [self.device] if self.device.type == 'cuda' else []

        with torch.random.fork_rng(devices=cuda_devices):
            if self.seed is not None:
                torch.manual_seed(self.seed)

            for epoch in range(num_epochs):
                self.current_epoch = epoch
                self.logger.start_epoch(epoch)

                train_metrics = self.train_epoch()
                val_metrics = self.evaluate('val')

                self.logger.end_epoch()
                self.logger.log_epoch(epoch, train_metrics, val_metrics)

                monitor_value = val_metrics['acc']

                self.checkpoint.on_epoch_end(
                    epoch=epoch,
                    model=self.model,
                    optimizer=self.optimizer,
                    value=monitor_value,
                    extra_state={
                        'hparams': self.model.hparams(),
                        'model_name': self.model_name,
                        'train_metrics': train_metrics,
                        'val_metrics': val_metrics,
                    }
                )

                if monitor_value > self.best_val_acc:
                    self.best_val_acc = monitor_value

                if self.early_stopping(monitor_value, epoch):
                    if self.verbose:
                        print(f"\nEarly stopping at epoch {epoch}")
                    break

        if num_epochs > 0:
            self.checkpoint.load_best(self.model)

        self.logger.save_final({
            'model_name': self.model_name,
            'best_epoch': self.checkpoint.best_epoch,
            'stopped_epoch': self.current_epoch
        })

        if self.verbose:
            print("-" * 60)
            print(f"Best val accuracy: {self.best_val_acc:.4f} at epoch {self.checkpoint.best_epoch}")

        return self.best_val_acc

    def test(self) -> Dict[str, float]:
        """
        Accuracy on every split.

        Returns:
            Dictionary mapping split name to accuracy
        """
        return {split: self.evaluate(split)['acc'] for split in ('train', 'val', 'test')}

    @torch.no_grad()
    def predict(self) -> torch.Tensor:
        """
        Get current logits for all nodes.

        Returns:
            Logits tensor [num_nodes, num_classes]
        """
        self.model.eval()
        return self.model(self.data.x, self.data.edge_index)

    def save_checkpoint(self, path: str):
        """
        Save current state to checkpoint.

        Args:
            path: Output path
        """
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        torch.save({
            'epoch': self.current_epoch,
            'model_state_dict': self.model.state_dict(),
            'optimizer_state_dict': self.optimizer.state_dict(),
            'best_val_acc': self.best_val_acc,
            'hparams': self.model.hparams(),
            'model_name': self.model_name,
            'config': self.config,
        }, path)

    def load_checkpoint(self, path: str):
        """
        Load state from checkpoint.

        Args:
            path: Checkpoint path
        """
        if not Path(path).exists():
            raise FileNotFoundError(f"Checkpoint not found: {path}")

        checkpoint = torch.load(path, map_location=self.device)

        self.model.load_state_dict(checkpoint['model_state_dict'])
        self.optimizer.load_state_dict(checkpoint['optimizer_state_dict'])
        self.current_epoch = checkpoint.get('epoch', 0)
        self.best_val_acc = checkpoint.get('best_val_acc', 0.0)


def load_model(path: str, device: Optional[torch.device] = None) -> NodeClassifier:
    """
    Rebuild a trained model from a checkpoint file.

    Args:
        path: Checkpoint path
        device: Device to place model on

    Returns:
        NodeClassifier in eval mode
    """
    if not Path(path).exists():
        raise FileNotFoundError(f"Checkpoint not found: {path}")

    checkpoint = torch.load(path, map_location=device or 'cpu')
    model = model_from_checkpoint(checkpoint)
    if device is not None:
        model = model.to(device)
    model.eval()
    return model


def train_or_load(
    dataset,
    config: Dict[str, Any],
    model_name: str = 'GNN',
    device: Optional[torch.device] = None,
    seed: Optional[int] = None,
    force_retrain: bool = False,
    verbose: bool = True
) -> Tuple[NodeClassifier, Dict[str, float]]:
    """
    Train a node classifier, or load it if a checkpoint for ``model_name`` exists.

    This is the recommended entry point for training.

    Args:
        dataset: NodeClassificationDataset instance
        config: Configuration dictionary
        model_name: 'MLP' or 'GNN'
        device: Device to use (defaults to cpu)
        seed: Seed for initialization and training (defaults to config 'seed')
        force_retrain: Train even when a checkpoint exists
        verbose: Whether to print progress

    Returns:
        Tuple of (trained_model, accuracy per split)
    """
    if device is None:
        device = torch.device('cpu')

    data = dataset.get_data(device=device)
    path = checkpoint_path_for(config, model_name)

    if path.exists() and not force_retrain:
        if verbose:
            print(f"Found pretrained model at {path}, loading...")
        model = load_model(str(path), device=device)
        trainer = NodeClassificationTrainer(model, data, config, model_name, seed, verbose=False)
    else:
        model = create_model(
            config,
            in_channels=dataset.num_features,
            out_channels=dataset.num_classes,
            model_name=model_name,
            seed=seed,
            device=device
        )
        trainer = NodeClassificationTrainer(model, data, config, model_name, seed, verbose=verbose)
        trainer.train(num_epochs=config.get('training', {}).get('epochs', 200))
        trainer.save_checkpoint(str(path))

    results = trainer.test()
    model.eval()

    if verbose:
        print(f"{model_name} accuracy: " +
              ", ".join(f"{split}={acc:.4f}" for split, acc in results.items()))

    return model, results

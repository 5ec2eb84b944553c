"""
Training Callbacks Module.

Callbacks used by the node classification trainer:
- EarlyStopping: stop once validation accuracy stops improving
- ModelCheckpoint: keep the best weights seen so far on disk
- TrainingLogger: per-epoch console lines and JSON metric files

All three monitor a single scalar per epoch. 'max' mode suits accuracy,
'min' mode suits losses.
"""

import torch
import json
import time
from pathlib import Path
from typing import Dict, Optional, List
from datetime import datetime

MODES = ('min', 'max')


def _check_mode(mode: str) -> None:
    if mode not in MODES:
        raise ValueError(f"mode must be 'min' or 'max', got {mode!r}")


def _initial_best(mode: str) -> float:
    return float('inf') if mode == 'min' else float('-inf')


def _improves(value: float, best: float, mode: str, min_delta: float = 0.0) -> bool:
    """True if ``value`` beats ``best`` by more than ``min_delta``."""
    if mode == 'min':
        return value < best - min_delta
    return value > best + min_delta


class EarlyStopping:
    """
    Patience-based early stopping.

    Example:
        >>> early_stopping = EarlyStopping(patience=50, mode='max')
        >>> for epoch in range(200):
        ...     if early_stopping(evaluate('val')['acc'], epoch):
        ...         break
    """

    def __init__(
        self,
        patience: int = 10,
        min_delta: float = 0.0001,
        mode: str = 'min'
    ):
        """
        Args:
            patience: Epochs without improvement before stopping
            min_delta: Smallest change that counts as an improvement
            mode: 'max' for accuracy, 'min' for loss
        """
        _check_mode(mode)

        self.patience = patience
        self.min_delta = min_delta
        self.mode = mode
        self.reset()

    def __call__(self, value: float, epoch: int = 0) -> bool:
        """Record this epoch's value; return True when training should stop."""
        if _improves(value, self.best_value, self.mode, self.min_delta):
            self.best_value = value
            self.best_epoch = epoch
            self.counter = 0
            return False

        self.counter += 1
        if self.counter < self.patience:
            return False

        self.stopped_epoch = epoch
        return True

    def reset(self):
        """Forget all observed values."""
        self.best_value = _initial_best(self.mode)
        self.counter = 0
        self.best_epoch = 0
        self.stopped_epoch = 0


class ModelCheckpoint:
    """
    Writes ``<prefix>_best.pt`` whenever the monitored value improves, and
    optionally ``<prefix>_epoch<N>.pt`` every ``save_every`` epochs.

    Checkpoint files hold the model and optimizer state dicts, the epoch, the
    monitored value and any ``extra_state`` the caller passes (the trainer adds
    the model hyperparameters so the file can rebuild the model on its own).
    """

    def __init__(
        self,
        save_dir: str = 'checkpoints',
        save_best: bool = True,
        save_every: Optional[int] = None,
        mode: str = 'min',
        filename_prefix: str = 'model'
    ):
        _check_mode(mode)

        self.save_dir = Path(save_dir)
        self.save_dir.mkdir(parents=True, exist_ok=True)

        self.save_best = save_best
        self.save_every = save_every
        self.mode = mode
        self.filename_prefix = filename_prefix

        self.best_value = _initial_best(mode)
        self.best_epoch = 0

    @property
    def best_path(self) -> Path:
        return self.save_dir / f'{self.filename_prefix}_best.pt'

    def on_epoch_end(
        self,
        epoch: int,
        model: torch.nn.Module,
        optimizer: torch.optim.Optimizer,
        value: float,
        extra_state: Optional[Dict] = None
    ) -> bool:
        """
        Update the best value and write whichever checkpoints are due.

        Returns:
            True if any file was written
        """
        due = []

        if _improves(value, self.best_value, self.mode):
            self.best_value = value
            self.best_epoch = epoch
            if self.save_best:
                due.append(self.best_path)

        if self.save_every and (epoch + 1) % self.save_every == 0:
            due.append(self.save_dir / f'{self.filename_prefix}_epoch{epoch}.pt')

        if due:
            state = self._state(epoch, model, optimizer, value, extra_state)
            for path in due:
                torch.save(state, path)

        return bool(due)

    def _state(
        self,
        epoch: int,
        model: torch.nn.Module,
        optimizer: torch.optim.Optimizer,
        value: float,
        extra_state: Optional[Dict]
    ) -> Dict:
        state = {
            'epoch': epoch,
            'model_state_dict': model.state_dict(),
            'optimizer_state_dict': optimizer.state_dict(),
            'value': value,
            'best_value': self.best_value,
            'best_epoch': self.best_epoch,
            'timestamp': datetime.now().isoformat()
        }
        state.update(extra_state or {})
        return state

    def load_best(
        self,
        model: torch.nn.Module,
        optimizer: Optional[torch.optim.Optimizer] = None
    ) -> Dict:
        """
        Copy the best saved weights back into ``model`` (and ``optimizer``).

        Returns:
            The checkpoint dictionary

        Raises:
            FileNotFoundError: If no best checkpoint has been written
        """
        if not self.best_path.exists():
            raise FileNotFoundError(f"No best checkpoint at {self.best_path}")

        device = next(model.parameters()).device
        checkpoint = torch.load(self.best_path, map_location=device)

        model.load_state_dict(checkpoint['model_state_dict'])
        if optimizer is not None:
            optimizer.load_state_dict(checkpoint['optimizer_state_dict'])

        return checkpoint


class TrainingLogger:
    """
    Collects one record per epoch and writes them as JSON.

    A record holds the epoch, seconds since start, ``train_*`` metrics and
    ``val_*`` metrics. ``save_final`` writes ``epoch_metrics.json`` (all
    records) and ``training_summary.json`` (totals and best val accuracy).

    Example:
        >>> logger = TrainingLogger(log_dir='logs/GNN', log_every=10)
        >>> logger.log_epoch(0, {'loss': 1.93, 'acc': 0.21}, {'loss': 1.94, 'acc': 0.18})
        >>> logger.save_final({'model_name': 'GNN'})
    """

    def __init__(
        self,
        log_dir: str = 'logs',
        log_every: int = 10,
        verbose: bool = True
    ):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_every = max(1, log_every)
        self.verbose = verbose

        self.epoch_metrics: List[Dict] = []
        self.epoch_times: List[float] = []
        self.start_time = time.time()
        self.epoch_start_time = None
        self.current_epoch = 0

    def start_epoch(self, epoch: int):
        self.current_epoch = epoch
        self.epoch_start_time = time.time()

    def end_epoch(self):
        if self.epoch_start_time is not None:
            self.epoch_times.append(time.time() - self.epoch_start_time)

    def log_epoch(
        self,
        epoch: int,
        metrics: Dict[str, float],
        val_metrics: Optional[Dict[str, float]] = None
    ):
        """Append a record; print it every ``log_every`` epochs."""
        record = {'epoch': epoch, 'timestamp': time.time() - self.start_time}
        record.update({f'train_{k}': v for k, v in metrics.items()})
        record.update({f'val_{k}': v for k, v in (val_metrics or {}).items()})
        self.epoch_metrics.append(record)

        if self.verbose and epoch % self.log_every == 0:
            print(self._format(record))

    def _format(self, record: Dict) -> str:
        parts = [f"Epoch {record['epoch']:4d}"]
        parts.extend(
            f"{key}: {value:.4f}" for key, value in record.items()
            if key.startswith(('train_', 'val_')) and isinstance(value, float)
        )
        if self.epoch_times:
            recent = self.epoch_times[-10:]
            parts.append(f"({sum(recent) / len(recent) * 1000:.1f}ms/epoch)")
        return " | ".join(parts)

    def get_metric_history(self, metric_name: str) -> List[float]:
        """Values of ``metric_name`` (e.g. 'val_acc') in epoch order."""
        return [m[metric_name] for m in self.epoch_metrics if metric_name in m]

    def save_final(self, extra_info: Optional[Dict] = None):
        """Write epoch_metrics.json and training_summary.json."""
        total_time = time.time() - self.start_time
        val_accs = self.get_metric_history('val_acc')

        summary = {
            'total_epochs': len(self.epoch_metrics),
            'total_time_seconds': total_time,
            'avg_epoch_time': sum(self.epoch_times) / len(self.epoch_times) if self.epoch_times else 0,
            'final_metrics': self.epoch_metrics[-1] if self.epoch_metrics else {},
            'best_val_acc': max(val_accs) if val_accs else None,
        }
        summary.update(extra_info or {})

        with open(self.log_dir / 'epoch_metrics.json', 'w') as f:
            json.dump(self.epoch_metrics, f, indent=2)

        with open(self.log_dir / 'training_summary.json', 'w') as f:
            json.dump(summary, f, indent=2)

        if self.verbose:
            print(f"\nTraining complete in {total_time:.1f} seconds")
            print(f"Logs saved to {self.log_dir}")

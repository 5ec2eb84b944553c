"""
Tests for Training Module.

Tests callbacks, the node classification trainer and checkpoint reuse.
"""

import pytest
import torch
import json
import sys
from pathlib import Path
import tempfile
import shutil

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import load_config
from gnn_onnx.data import NodeClassificationDataset
from gnn_onnx.model import create_model
from gnn_onnx.training import (
    NodeClassificationTrainer,
    EarlyStopping,
    ModelCheckpoint,
    TrainingLogger,
    train_or_load,
    load_model,
    checkpoint_path_for
)
from gnn_onnx.utils.metrics import EmptyMaskError


@pytest.fixture
def temp_dir():
    """Create temporary directory for test outputs."""
    temp = tempfile.mkdtemp()
    yield Path(temp)
    shutil.rmtree(temp)


@pytest.fixture
def config(temp_dir):
    """Test configuration writing into the temporary directory."""
    config = load_config()
    config['training']['epochs'] = 60
    config['training']['early_stopping_patience'] = 20
    config['paths'] = {
        'checkpoints': str(temp_dir / 'checkpoints'),
        'logs': str(temp_dir / 'logs'),
        'exports': str(temp_dir / 'exports'),
    }
    return config


@pytest.fixture
def dataset():
    return NodeClassificationDataset.from_synthetic(
        num_nodes=200,
        num_features=16,
        num_classes=4,
        num_edges=800,
        train_per_class=10,
        num_val=40,
        num_test=80,
        seed=0
    )


class TestEarlyStopping:
    """Tests for early stopping callback."""

    def test_min_mode(self):
        """Test early stopping in min mode (loss)."""
        early_stopping = EarlyStopping(patience=3, mode='min', min_delta=0.0)

        assert not early_stopping(1.0, 0)
        assert not early_stopping(0.9, 1)
        assert not early_stopping(0.95, 2)
        assert not early_stopping(0.95, 3)
        assert early_stopping(0.95, 4)
        assert early_stopping.best_epoch == 1

    def test_max_mode(self):
        """Test early stopping in max mode (accuracy)."""
        early_stopping = EarlyStopping(patience=2, mode='max', min_delta=0.0)

        assert not early_stopping(0.5, 0)
        assert not early_stopping(0.7, 1)
        assert not early_stopping(0.6, 2)
        assert early_stopping(0.7, 3)
        assert early_stopping.best_value == 0.7
        assert early_stopping.stopped_epoch == 3

    def test_min_delta(self):
        """Test that improvements smaller than min_delta do not count."""
        early_stopping = EarlyStopping(patience=1, mode='max', min_delta=0.1)

        assert not early_stopping(0.5, 0)
        assert early_stopping(0.55, 1)

    def test_reset(self):
        """Test resetting state."""
        early_stopping = EarlyStopping(patience=1, mode='max')
        early_stopping(0.5, 0)
        early_stopping(0.4, 1)

        early_stopping.reset()
        assert early_stopping.counter == 0
        assert early_stopping.best_value == float('-inf')

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            EarlyStopping(mode='best')


class TestModelCheckpoint:
    """Tests for best-model checkpointing."""

    def test_saves_only_improvements(self, temp_dir):
        """Test that only improving epochs are saved in max mode."""
        model = torch.nn.Linear(4, 2)
        optimizer = torch.optim.Adam(model.parameters())
        checkpoint = ModelCheckpoint(save_dir=str(temp_dir), mode='max', filename_prefix='NodeLevelMLP')

        assert checkpoint.on_epoch_end(0, model, optimizer, 0.5)
        assert not checkpoint.on_epoch_end(1, model, optimizer, 0.4)
        assert checkpoint.on_epoch_end(2, model, optimizer, 0.6)

        assert checkpoint.best_epoch == 2
        assert checkpoint.best_path == temp_dir / 'NodeLevelMLP_best.pt'
        assert checkpoint.best_path.exists()

    def test_load_best_restores_weights(self, temp_dir):
        """Test restoring the best weights after further updates."""
        model = torch.nn.Linear(4, 2)
        optimizer = torch.optim.Adam(model.parameters())
        checkpoint = ModelCheckpoint(save_dir=str(temp_dir), mode='max')

        checkpoint.on_epoch_end(0, model, optimizer, 0.9, extra_state={'note': 'best'})
        best_weight = model.weight.detach().clone()

        with torch.no_grad():
            model.weight.add_(1.0)

        state = checkpoint.load_best(model)

        assert torch.equal(model.weight, best_weight)
        assert state['note'] == 'best'
        assert state['epoch'] == 0

    def test_load_best_missing(self, temp_dir):
        checkpoint = ModelCheckpoint(save_dir=str(temp_dir))
        with pytest.raises(FileNotFoundError):
            checkpoint.load_best(torch.nn.Linear(2, 2))

    def test_periodic_checkpoints(self, temp_dir):
        model = torch.nn.Linear(4, 2)
        optimizer = torch.optim.Adam(model.parameters())
        checkpoint = ModelCheckpoint(save_dir=str(temp_dir), save_best=False, save_every=2)

        for epoch in range(4):
            checkpoint.on_epoch_end(epoch, model, optimizer, float(epoch))

        assert (temp_dir / 'model_epoch1.pt').exists()
        assert (temp_dir / 'model_epoch3.pt').exists()
        assert not (temp_dir / 'model_best.pt').exists()


class TestTrainingLogger:
    """Tests for metrics logging."""

    def test_logging(self, temp_dir):
        """Test metric history and saved JSON files."""
        logger = TrainingLogger(log_dir=str(temp_dir), verbose=False)

        for epoch in range(3):
            logger.start_epoch(epoch)
            logger.end_epoch()
            logger.log_epoch(epoch, {'loss': 1.0 - 0.1 * epoch}, {'acc': 0.5 + 0.1 * epoch})

        assert logger.get_metric_history('train_loss') == pytest.approx([1.0, 0.9, 0.8])

        logger.save_final({'model_name': 'GNN'})

        with open(temp_dir / 'training_summary.json') as f:
            summary = json.load(f)
        with open(temp_dir / 'epoch_metrics.json') as f:
            epochs = json.load(f)

        assert summary['total_epochs'] == 3
        assert summary['best_val_acc'] == pytest.approx(0.7)
        assert summary['model_name'] == 'GNN'
        assert len(epochs) == 3


class TestNodeClassificationTrainer:
    """Tests for the trainer."""

    @pytest.mark.parametrize('model_name', ['MLP', 'GNN'])
    def test_training_learns(self, model_name, config, dataset):
        """Test that both models beat chance on the synthetic graph."""
        model = create_model(config, dataset.num_features, dataset.num_classes, model_name=model_name)
        trainer = NodeClassificationTrainer(model, dataset.get_data(), config, model_name=model_name,
                                            verbose=False)

        best_val_acc = trainer.train(num_epochs=60)
        accuracies = trainer.test()

        assert best_val_acc > 0.5
        assert accuracies['val'] == pytest.approx(best_val_acc)
        assert set(accuracies) == {'train', 'val', 'test'}

    def test_loss_decreases(self, config, dataset):
        model = create_model(config, dataset.num_features, dataset.num_classes)
        trainer = NodeClassificationTrainer(model, dataset.get_data(), config, verbose=False)

        first = trainer.train_epoch()['loss']
        for _ in range(20):
            last = trainer.train_epoch()['loss']

        assert last < first

    def test_outputs_written(self, config, dataset):
        """Test that checkpoints and logs land in the configured directories."""
        model = create_model(config, dataset.num_features, dataset.num_classes)
        trainer = NodeClassificationTrainer(model, dataset.get_data(), config, model_name='GNN',
                                            verbose=False)
        trainer.train(num_epochs=5)

        checkpoints = Path(config['paths']['checkpoints'])
        logs = Path(config['paths']['logs']) / 'GNN'
        assert (checkpoints / 'NodeLevelGNN_best.pt').exists()
        assert (logs / 'epoch_metrics.json').exists()
        assert (logs / 'training_summary.json').exists()

    def test_seeded_training_reproducible(self, config, dataset):
        """Test that the same seed gives the same trained weights."""
        states = []
        for _ in range(2):
            model = create_model(config, dataset.num_features, dataset.num_classes, seed=11)
            trainer = NodeClassificationTrainer(model, dataset.get_data(), config, seed=11,
                                                verbose=False)
            trainer.train(num_epochs=10)
            states.append(model.state_dict())

        for key in states[0]:
            assert torch.equal(states[0][key], states[1][key]), key

    def test_global_rng_restored(self, config, dataset):
        model = create_model(config, dataset.num_features, dataset.num_classes)
        trainer = NodeClassificationTrainer(model, dataset.get_data(), config, verbose=False)

        state = torch.get_rng_state()
        trainer.train(num_epochs=3)
        assert torch.equal(state, torch.get_rng_state())

    def test_empty_test_split(self, config):
        """Test that evaluating an empty split raises instead of returning NaN."""
        dataset = NodeClassificationDataset.from_synthetic(
            num_nodes=100, num_features=8, num_edges=300,
            train_per_class=5, num_val=20, num_test=0, seed=2
        )
        model = create_model(config, dataset.num_features, dataset.num_classes)
        trainer = NodeClassificationTrainer(model, dataset.get_data(), config, verbose=False)

        assert 0.0 <= trainer.evaluate('val')['acc'] <= 1.0
        with pytest.raises(EmptyMaskError):
            trainer.evaluate('test')

    def test_save_and_load_checkpoint(self, config, dataset, temp_dir):
        model = create_model(config, dataset.num_features, dataset.num_classes)
        trainer = NodeClassificationTrainer(model, dataset.get_data(), config, verbose=False)
        trainer.train(num_epochs=5)

        path = temp_dir / 'manual.pt'
        trainer.save_checkpoint(str(path))

        restored = load_model(str(path))
        assert not restored.training
        for key, value in model.state_dict().items():
            assert torch.equal(value, restored.state_dict()[key])

        trainer.load_checkpoint(str(path))
        assert trainer.best_val_acc == pytest.approx(trainer.evaluate('val')['acc'])

    def test_load_missing_checkpoint(self, config, dataset, temp_dir):
        model = create_model(config, dataset.num_features, dataset.num_classes)
        trainer = NodeClassificationTrainer(model, dataset.get_data(), config, verbose=False)

        with pytest.raises(FileNotFoundError):
            trainer.load_checkpoint(str(temp_dir / 'missing.pt'))
        with pytest.raises(FileNotFoundError):
            load_model(str(temp_dir / 'missing.pt'))


class TestTrainOrLoad:
    """Tests for checkpoint reuse keyed by model name."""

    def test_trains_then_reuses(self, config, dataset, capsys):
        """Test that a second call loads the checkpoint instead of retraining."""
        config['training']['epochs'] = 15

        model, accuracies = train_or_load(dataset, config, model_name='GNN')
        path = checkpoint_path_for(config, 'GNN')
        assert path.exists()
        assert path.name == 'NodeLevelGNN.pt'
        capsys.readouterr()

        reloaded, reloaded_accuracies = train_or_load(dataset, config, model_name='GNN')
        output = capsys.readouterr().out

        assert 'Found pretrained model' in output
        assert reloaded_accuracies == pytest.approx(accuracies)
        for key, value in model.state_dict().items():
            assert torch.equal(value, reloaded.state_dict()[key])

    def test_checkpoints_keyed_by_model_name(self, config, dataset):
        config['training']['epochs'] = 5

        mlp, _ = train_or_load(dataset, config, model_name='MLP', verbose=False)
        gnn, _ = train_or_load(dataset, config, model_name='GNN', verbose=False)

        assert checkpoint_path_for(config, 'MLP').exists()
        assert checkpoint_path_for(config, 'GNN').exists()
        assert not mlp.uses_edges
        assert gnn.uses_edges

    def test_force_retrain(self, config, dataset, capsys):
        config['training']['epochs'] = 5
        train_or_load(dataset, config, model_name='MLP', verbose=False)

        train_or_load(dataset, config, model_name='MLP', force_retrain=True)
        assert 'Found pretrained model' not in capsys.readouterr().out


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

"""
Tests for Data Module.

Tests dataset construction, synthetic graph generation and split masks.
"""

import pytest
import torch
import sys
from pathlib import Path
import tempfile
import shutil

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import load_config
from gnn_onnx.data import (
    NodeClassificationDataset,
    MaskOverlapError,
    validate_masks,
    make_planetoid_split,
    index_to_mask
)
from gnn_onnx.utils.graph_utils import is_undirected
from gnn_onnx.utils.metrics import EmptyMaskError


def make_masks(num_nodes, train, val, test):
    return {
        'train': index_to_mask(torch.tensor(train, dtype=torch.long), num_nodes),
        'val': index_to_mask(torch.tensor(val, dtype=torch.long), num_nodes),
        'test': index_to_mask(torch.tensor(test, dtype=torch.long), num_nodes),
    }


class TestSyntheticDataset:
    """Tests for the synthetic citation-like graph."""

    @pytest.fixture
    def dataset(self):
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

    def test_shapes(self, dataset):
        """Test tensor shapes and dtypes."""
        assert dataset.features.shape == (200, 16)
        assert dataset.features.dtype == torch.float32
        assert dataset.labels.shape == (200,)
        assert dataset.labels.dtype == torch.int64
        assert dataset.edge_index.shape[0] == 2
        assert dataset.edge_index.dtype == torch.int64
        assert dataset.num_classes == 4

    def test_edges_valid(self, dataset):
        """Test edges are in range, undirected and loop-free."""
        edge_index = dataset.edge_index
        assert 0 < dataset.num_edges <= 800
        assert edge_index.min() >= 0
        assert edge_index.max() < dataset.num_nodes
        assert not (edge_index[0] == edge_index[1]).any()
        assert is_undirected(edge_index)

    def test_split_sizes(self, dataset):
        """Test the Planetoid-style split sizes."""
        assert int(dataset.masks['train'].sum()) == 40
        assert int(dataset.masks['val'].sum()) == 40
        assert int(dataset.masks['test'].sum()) == 80

    def test_train_nodes_per_class(self, dataset):
        """Test that every class has the same number of training nodes."""
        train_labels = dataset.labels[dataset.masks['train']]
        assert torch.bincount(train_labels, minlength=4).tolist() == [10, 10, 10, 10]

    def test_masks_disjoint(self, dataset):
        """Test that split masks do not overlap."""
        train, val, test = (dataset.masks[s] for s in ('train', 'val', 'test'))
        assert not (train & val).any()
        assert not (train & test).any()
        assert not (val & test).any()

    def test_seed_reproducibility(self):
        """Test that the same seed gives the same graph."""
        a = NodeClassificationDataset.from_synthetic(num_nodes=100, num_edges=300, seed=5,
                                                     num_val=20, num_test=20, train_per_class=5)
        b = NodeClassificationDataset.from_synthetic(num_nodes=100, num_edges=300, seed=5,
                                                     num_val=20, num_test=20, train_per_class=5)

        assert torch.equal(a.features, b.features)
        assert torch.equal(a.edge_index, b.edge_index)
        assert torch.equal(a.masks['train'], b.masks['train'])

    def test_homophily(self, dataset):
        """Test that most edges connect nodes of the same class."""
        src, dst = dataset.edge_index
        same = (dataset.labels[src] == dataset.labels[dst]).float().mean().item()
        assert same > 0.6

    def test_cora_sized_split(self):
        """Test that a Cora-sized graph gets non-empty train and val masks."""
        dataset = NodeClassificationDataset.from_synthetic(
            num_nodes=2708,
            num_features=8,
            num_classes=7,
            num_edges=10556,
            train_per_class=20,
            num_val=500,
            num_test=1000,
            seed=1
        )

        assert dataset.num_nodes == 2708
        assert int(dataset.masks['train'].sum()) == 140
        assert int(dataset.masks['val'].sum()) == 500
        assert int(dataset.masks['test'].sum()) == 1000

    def test_from_config(self):
        """Test building the synthetic graph from config."""
        config = load_config()
        dataset = NodeClassificationDataset.from_config(config, synthetic=True)

        synthetic = config['dataset']['synthetic']
        assert dataset.num_nodes == synthetic['num_nodes']
        assert dataset.num_features == synthetic['num_features']
        assert dataset.num_classes == synthetic['num_classes']


class TestDatasetValidation:
    """Tests for construction-time validation."""

    @pytest.fixture
    def parts(self):
        num_nodes = 10
        features = torch.randn(num_nodes, 3)
        edge_index = torch.tensor([[0, 1, 2, 3], [1, 2, 3, 4]])
        labels = torch.tensor([0, 1] * 5)
        masks = make_masks(num_nodes, [0, 1], [2, 3], [4, 5])
        return features, edge_index, labels, masks

    def build(self, features, edge_index, labels, masks, **kwargs):
        return NodeClassificationDataset(
            features, edge_index, labels,
            masks['train'], masks['val'], masks['test'],
            **kwargs
        )

    def test_valid(self, parts):
        """Test that valid inputs build a dataset."""
        dataset = self.build(*parts)
        assert dataset.num_nodes == 10
        assert dataset.num_edges == 4
        assert dataset.num_classes == 2

    def test_edge_out_of_range(self, parts):
        """Test that an edge referencing a missing node is rejected."""
        features, edge_index, labels, masks = parts
        edge_index = torch.tensor([[0, 1], [1, 10]])

        with pytest.raises(ValueError, match='node indices'):
            self.build(features, edge_index, labels, masks)

    def test_negative_edge(self, parts):
        """Test that negative node indices are rejected."""
        features, _, labels, masks = parts
        with pytest.raises(ValueError):
            self.build(features, torch.tensor([[0, -1], [1, 2]]), labels, masks)

    def test_float_edges(self, parts):
        """Test that float edge indices are rejected."""
        features, edge_index, labels, masks = parts
        with pytest.raises(ValueError, match='integer'):
            self.build(features, edge_index.float(), labels, masks)

    def test_bad_edge_shape(self, parts):
        """Test that a non-[2, E] edge index is rejected."""
        features, _, labels, masks = parts
        with pytest.raises(ValueError, match='shape'):
            self.build(features, torch.tensor([[0, 1, 2]]), labels, masks)

    def test_label_length_mismatch(self, parts):
        """Test that labels must cover every node."""
        features, edge_index, _, masks = parts
        with pytest.raises(ValueError):
            self.build(features, edge_index, torch.zeros(9, dtype=torch.long), masks)

    def test_empty_graph_edges(self, parts):
        """Test that a graph with no edges is accepted."""
        features, _, labels, masks = parts
        dataset = self.build(features, torch.empty(2, 0, dtype=torch.long), labels, masks)
        assert dataset.num_edges == 0

    def test_get_data(self, parts):
        """Test conversion to a PyG Data object."""
        dataset = self.build(*parts)
        data = dataset.get_data()

        assert data.num_nodes == 10
        assert torch.equal(data.x, dataset.features)
        assert torch.equal(data.edge_index, dataset.edge_index)
        assert torch.equal(data.y, dataset.labels)
        assert torch.equal(data.train_mask, dataset.masks['train'])

    def test_statistics(self, parts):
        """Test dataset statistics."""
        stats = self.build(*parts).get_statistics()

        assert stats['num_nodes'] == 10
        assert stats['num_edges'] == 4
        assert stats['num_classes'] == 2
        assert stats['split_sizes'] == {'train': 2, 'val': 2, 'test': 2}
        assert sum(stats['class_counts']) == 10


class TestMasks:
    """Tests for split mask validation and construction."""

    def test_valid_masks(self):
        """Test that disjoint non-empty masks pass."""
        validate_masks(make_masks(6, [0, 1], [2, 3], [4, 5]), 6)

    def test_empty_test_mask_allowed(self):
        """Test that an empty test split is allowed."""
        validate_masks(make_masks(6, [0, 1], [2, 3], []), 6)

    @pytest.mark.parametrize('split', ['train', 'val'])
    def test_empty_required_mask(self, split):
        """Test that empty train or val masks are rejected."""
        masks = make_masks(6, [0, 1], [2, 3], [4, 5])
        masks[split] = torch.zeros(6, dtype=torch.bool)

        with pytest.raises(EmptyMaskError):
            validate_masks(masks, 6)

    def test_overlap_rejected(self):
        """Test that overlapping masks are rejected by default."""
        masks = make_masks(6, [0, 1], [1, 2], [4, 5])

        with pytest.raises(MaskOverlapError):
            validate_masks(masks, 6)

    def test_overlap_allowed_when_relaxed(self):
        """Test that overlap is accepted when disjointness is not required."""
        masks = make_masks(6, [0, 1], [1, 2], [4, 5])
        validate_masks(masks, 6, require_disjoint=False)

    def test_non_boolean_mask(self):
        """Test that integer masks are rejected."""
        masks = make_masks(6, [0, 1], [2, 3], [4, 5])
        masks['val'] = masks['val'].long()

        with pytest.raises(ValueError, match='boolean'):
            validate_masks(masks, 6)

    def test_wrong_length(self):
        """Test that masks must cover every node."""
        masks = make_masks(6, [0, 1], [2, 3], [4, 5])
        masks['test'] = torch.zeros(5, dtype=torch.bool)

        with pytest.raises(ValueError, match='shape'):
            validate_masks(masks, 6)

    def test_missing_mask(self):
        """Test that all three masks are required."""
        masks = make_masks(6, [0, 1], [2, 3], [4, 5])
        del masks['test']

        with pytest.raises(ValueError, match="Missing 'test'"):
            validate_masks(masks, 6)

    def test_planetoid_split_too_small(self):
        """Test that an impossible split is rejected."""
        labels = torch.tensor([0, 1] * 10)
        with pytest.raises(ValueError):
            make_planetoid_split(labels, 2, train_per_class=5, num_val=5, num_test=10)

    def test_planetoid_split_class_too_small(self):
        """Test that a class with too few nodes is rejected."""
        labels = torch.tensor([0] * 10 + [1] * 2)
        with pytest.raises(ValueError, match='Class 1'):
            make_planetoid_split(labels, 2, train_per_class=3, num_val=1, num_test=1)

    def test_dataset_rejects_overlap(self):
        """Test that the dataset enforces disjoint masks by default."""
        masks = make_masks(4, [0], [0, 1], [2])

        with pytest.raises(MaskOverlapError):
            NodeClassificationDataset(
                torch.randn(4, 2), torch.tensor([[0], [1]]), torch.tensor([0, 1, 0, 1]),
                masks['train'], masks['val'], masks['test']
            )


class TestDatasetPersistence:
    """Tests for saving and loading datasets."""

    @pytest.fixture
    def temp_dir(self):
        """Create temporary directory."""
        temp = tempfile.mkdtemp()
        yield Path(temp)
        shutil.rmtree(temp)

    def test_save_load(self, temp_dir):
        """Test round-tripping a dataset through disk."""
        dataset = NodeClassificationDataset.from_synthetic(
            num_nodes=80, num_edges=200, train_per_class=5, num_val=20, num_test=20, seed=3
        )
        dataset.save(str(temp_dir))

        assert (temp_dir / 'graph.pt').exists()
        assert (temp_dir / 'statistics.json').exists()

        loaded = NodeClassificationDataset.load(str(temp_dir))

        assert loaded.name == dataset.name
        assert loaded.num_classes == dataset.num_classes
        assert torch.equal(loaded.features, dataset.features)
        assert torch.equal(loaded.edge_index, dataset.edge_index)
        for split in ('train', 'val', 'test'):
            assert torch.equal(loaded.masks[split], dataset.masks[split])

    def test_load_missing(self, temp_dir):
        """Test loading from an empty directory."""
        with pytest.raises(FileNotFoundError):
            NodeClassificationDataset.load(str(temp_dir / 'missing'))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

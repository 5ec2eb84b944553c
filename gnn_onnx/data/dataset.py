"""
Node Classification Dataset Module.

This module provides the dataset container used by training, export and
verification. Datasets come from PyTorch Geometric's Planetoid loader
(Cora, CiteSeer, PubMed) or from a seeded synthetic citation-like graph for
offline development and tests.
"""

import torch
from torch_geometric.data import Data
from torch_geometric.datasets import Planetoid
from typing import Dict, Optional, Any
from pathlib import Path
import json

from .masks import validate_masks, make_planetoid_split
from ..utils.graph_utils import check_edge_index, compute_graph_statistics, to_undirected


class NodeClassificationDataset:
    """
    Single-graph node classification dataset.

    Holds everything needed for training and export:
    - Node features [num_nodes, num_features] (float32)
    - Edge index [2, num_edges] (int64)
    - Labels [num_nodes] (int64)
    - Train/val/test boolean masks

    All tensors are validated at construction and treated as read-only.

    Example:
        >>> from gnn_onnx.data import NodeClassificationDataset
        >>>
        >>> dataset = NodeClassificationDataset.from_planetoid('data/Planetoid', 'Cora')
        >>> data = dataset.get_data()
        >>> print(data.num_nodes, data.edge_index.shape)  # 2708 [2, 10556]
        >>>
        >>> # Offline synthetic graph
        >>> dataset = NodeClassificationDataset.from_synthetic(num_nodes=300, seed=0)
    """

    def __init__(
        self,
        features: torch.Tensor,
        edge_index: torch.Tensor,
        labels: torch.Tensor,
        train_mask: torch.Tensor,
        val_mask: torch.Tensor,
        test_mask: torch.Tensor,
        num_classes: Optional[int] = None,
        name: str = 'graph',
        require_disjoint_masks: bool = True
    ):
        """
        Initialize dataset.

        Args:
            features: Node features
            edge_index: Edge indices
            labels: Node labels
            train_mask: Training node mask
            val_mask: Validation node mask
            test_mask: Test node mask
            num_classes: Number of classes (inferred from labels if None)
            name: Dataset name
            require_disjoint_masks: Whether overlapping masks are rejected
        """
        if features.dim() != 2:
            raise ValueError(f"features must be 2-D, got shape {list(features.shape)}")

        num_nodes = features.shape[0]
        if labels.shape != (num_nodes,):
            raise ValueError(f"labels shape {list(labels.shape)} != [{num_nodes}]")

        check_edge_index(edge_index, num_nodes)

        self.features = features.float()
        self.edge_index = edge_index.long()
        self.labels = labels.long()
        self.masks = {'train': train_mask, 'val': val_mask, 'test': test_mask}
        self.name = name
        self.num_classes = int(num_classes if num_classes is not None else int(labels.max()) + 1)

        validate_masks(self.masks, num_nodes, require_disjoint=require_disjoint_masks)

    @classmethod
    def from_planetoid(
        cls,
        root: str = 'data/Planetoid',
        name: str = 'Cora',
        **kwargs
    ) -> 'NodeClassificationDataset':
        """
        Load a Planetoid citation dataset (downloaded and cached by PyG).

        Args:
            root: Cache directory
            name: 'Cora', 'CiteSeer' or 'PubMed'
            **kwargs: Extra NodeClassificationDataset arguments

        Returns:
            NodeClassificationDataset
        """
        planetoid = Planetoid(root=root, name=name)
        data = planetoid[0]

        return cls(
            features=data.x,
            edge_index=data.edge_index,
            labels=data.y,
            train_mask=data.train_mask,
            val_mask=data.val_mask,
            test_mask=data.test_mask,
            num_classes=planetoid.num_classes,
            name=name,
            **kwargs
        )

    @classmethod
    def from_synthetic(
        cls,
        num_nodes: int = 300,
        num_features: int = 32,
        num_classes: int = 4,
        num_edges: int = 1200,
        train_per_class: int = 20,
        num_val: int = 60,
        num_test: int = 120,
        homophily: float = 0.8,
        noise: float = 1.0,
        seed: int = 42
    ) -> 'NodeClassificationDataset':
        """
        Create a seeded synthetic citation-like graph.

        Features are noisy class centroids and most edges connect nodes of the
        same class, so both an MLP and a GNN can learn the task and the GNN
        benefits from the topology. Edges are stored in both directions with
        duplicates and self-loops removed, so the final count is close to but
        at most ``num_edges``.

        Args:
            num_nodes: Number of nodes
            num_features: Feature dimension
            num_classes: Number of classes
            num_edges: Target number of directed edges
            train_per_class: Training nodes per class
            num_val: Validation nodes
            num_test: Test nodes
            homophily: Probability that an edge stays within a class
            noise: Feature noise standard deviation
            seed: Random seed

        Returns:
            NodeClassificationDataset
        """
        generator = torch.Generator().manual_seed(seed)

        labels = (torch.arange(num_nodes) % num_classes)[torch.randperm(num_nodes, generator=generator)]

        centroids = torch.randn(num_classes, num_features, generator=generator)
        features = centroids[labels] + noise * torch.randn(num_nodes, num_features, generator=generator)

        num_pairs = num_edges // 2
        src = torch.randint(0, num_nodes, (num_pairs,), generator=generator)
        dst = torch.randint(0, num_nodes, (num_pairs,), generator=generator)
        same_class = torch.rand(num_pairs, generator=generator) < homophily

        for c in range(num_classes):
            members = torch.nonzero(labels == c).flatten()
            chosen = same_class & (labels[src] == c)
            count = int(chosen.sum())
            if count and members.numel():
                dst[chosen] = members[torch.randint(0, members.numel(), (count,), generator=generator)]

        edge_index = to_undirected(torch.stack([src, dst]))

        masks = make_planetoid_split(
            labels, num_classes,
            train_per_class=train_per_class,
            num_val=num_val,
            num_test=num_test,
            generator=generator
        )

        return cls(
            features=features,
            edge_index=edge_index,
            labels=labels,
            train_mask=masks['train'],
            val_mask=masks['val'],
            test_mask=masks['test'],
            num_classes=num_classes,
            name=f'synthetic-{seed}'
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any], synthetic: bool = False) -> 'NodeClassificationDataset':
        """
        Create dataset from the 'dataset' config section.

        Args:
            config: Configuration dictionary
            synthetic: Use the synthetic graph instead of Planetoid

        Returns:
            NodeClassificationDataset
        """
        dataset_config = config.get('dataset', {})
        if synthetic:
            return cls.from_synthetic(
                seed=config.get('seed', 42),
                **dataset_config.get('synthetic', {})
            )
        return cls.from_planetoid(
            root=dataset_config.get('root', 'data/Planetoid'),
            name=dataset_config.get('name', 'Cora')
        )

    def get_data(self, device: Optional[torch.device] = None) -> Data:
        """
        Get PyTorch Geometric Data object.

        Args:
            device: Device to move data to (optional)

        Returns:
            Data object with x, edge_index, y and split masks
        """
        data = Data(
            x=self.features,
            edge_index=self.edge_index,
            y=self.labels,
            train_mask=self.masks['train'],
            val_mask=self.masks['val'],
            test_mask=self.masks['test'],
            num_nodes=self.num_nodes
        )

        if device is not None:
            data = data.to(device)

        return data

    @property
    def num_nodes(self) -> int:
        """Number of nodes in the graph."""
        return self.features.shape[0]

    @property
    def num_edges(self) -> int:
        """Number of directed edges in the graph."""
        return self.edge_index.shape[1]

    @property
    def num_features(self) -> int:
        """Number of features per node."""
        return self.features.shape[1]

    def get_statistics(self) -> Dict:
        """
        Get dataset statistics.

        Returns:
            Dictionary with graph, label and split statistics
        """
        stats = compute_graph_statistics(self.edge_index, self.num_nodes)
        stats.update({
            'name': self.name,
            'num_features': self.num_features,
            'num_classes': self.num_classes,
            'class_counts': torch.bincount(self.labels, minlength=self.num_classes).tolist(),
            'split_sizes': {name: int(mask.sum()) for name, mask in self.masks.items()},
        })
        return stats

    def save(self, path: str) -> None:
        """
        Save dataset to disk.

        Saves:
        - Tensors (graph.pt)
        - Statistics (JSON)

        Args:
            path: Directory path to save to
        """
        save_dir = Path(path)
        save_dir.mkdir(parents=True, exist_ok=True)

        torch.save({
            'name': self.name,
            'num_classes': self.num_classes,
            'features': self.features,
            'edge_index': self.edge_index,
            'labels': self.labels,
            'train_mask': self.masks['train'],
            'val_mask': self.masks['val'],
            'test_mask': self.masks['test'],
        }, save_dir / 'graph.pt')

        with open(save_dir / 'statistics.json', 'w') as f:
            json.dump(self.get_statistics(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> 'NodeClassificationDataset':
        """
        Load dataset from disk.

        Args:
            path: Directory path to load from

        Returns:
            NodeClassificationDataset
        """
        graph_path = Path(path) / 'graph.pt'
        if not graph_path.exists():
            raise FileNotFoundError(f"Dataset file not found: {graph_path}")

        saved = torch.load(graph_path)

        return cls(
            features=saved['features'],
            edge_index=saved['edge_index'],
            labels=saved['labels'],
            train_mask=saved['train_mask'],
            val_mask=saved['val_mask'],
            test_mask=saved['test_mask'],
            num_classes=saved['num_classes'],
            name=saved['name']
        )

"""
Graph Utilities Module.

This module provides helper functions for graph validation, relabeling
and analysis.
"""

import torch
import networkx as nx
from torch_geometric.data import Data
from torch_geometric.utils import to_networkx
from typing import Dict, Tuple, Optional
from collections import Counter


def check_edge_index(edge_index: torch.Tensor, num_nodes: int) -> None:
    """
    Validate an edge index against the number of nodes.

    Args:
        edge_index: Edge indices [2, num_edges]
        num_nodes: Total number of nodes

    Raises:
        ValueError: If shape, dtype or index range is invalid
    """
    if edge_index.dim() != 2 or edge_index.shape[0] != 2:
        raise ValueError(
            f"edge_index must have shape [2, num_edges], got {list(edge_index.shape)}"
        )
    if edge_index.dtype.is_floating_point or edge_index.dtype == torch.bool:
        raise ValueError(f"edge_index must be an integer tensor, got {edge_index.dtype}")

    if edge_index.numel() == 0:
        return

    min_index = int(edge_index.min())
    max_index = int(edge_index.max())
    if min_index < 0 or max_index >= num_nodes:
        raise ValueError(
            f"edge_index contains node indices in [{min_index}, {max_index}], "
            f"expected all in [0, {num_nodes})"
        )


def permute_graph(
    features: torch.Tensor,
    labels: Optional[torch.Tensor],
    edge_index: torch.Tensor,
    perm: torch.Tensor
) -> Tuple[torch.Tensor, Optional[torch.Tensor], torch.Tensor]:
    """
    Relabel nodes consistently across features, labels and edges.

    New node ``i`` is old node ``perm[i]``, so that ``out[i] == original[perm[i]]``
    for any permutation-equivariant model.

    Args:
        features: Node features [num_nodes, num_features]
        labels: Optional node labels [num_nodes]
        edge_index: Edge indices [2, num_edges]
        perm: Permutation of range(num_nodes)

    Returns:
        Tuple of (features, labels, edge_index) in the new labeling
    """
    num_nodes = features.shape[0]
    if perm.numel() != num_nodes:
        raise ValueError(f"perm has {perm.numel()} entries, expected {num_nodes}")

    # old index -> new index
    inverse = torch.empty_like(perm)
    inverse[perm] = torch.arange(num_nodes, device=perm.device)

    new_features = features[perm]
    new_labels = labels[perm] if labels is not None else None
    new_edge_index = inverse[edge_index]

    return new_features, new_labels, new_edge_index


def compute_degree_distribution(edge_index: torch.Tensor, num_nodes: int) -> Dict:
    """
    Compute in-degree distribution statistics.

    Args:
        edge_index: Edge indices [2, num_edges]
        num_nodes: Total number of nodes

    Returns:
        Dictionary with degree statistics
    """
    if edge_index.numel() == 0:
        return {
            'degrees': torch.zeros(num_nodes, dtype=torch.long),
            'mean': 0.0,
            'std': 0.0,
            'min': 0,
            'max': 0,
            'histogram': {},
            'isolated_nodes': num_nodes
        }

    # Citation edges are stored in both directions, so in-degree == degree
    in_degrees = torch.bincount(edge_index[1].cpu(), minlength=num_nodes)
    degrees_float = in_degrees.float()

    degree_counts = Counter(in_degrees.tolist())
    histogram = {int(k): v for k, v in sorted(degree_counts.items())}

    return {
        'degrees': in_degrees,
        'mean': degrees_float.mean().item(),
        'std': degrees_float.std().item() if num_nodes > 1 else 0.0,
        'min': int(in_degrees.min().item()),
        'max': int(in_degrees.max().item()),
        'histogram': histogram,
        'isolated_nodes': int((in_degrees == 0).sum().item())
    }


def compute_graph_statistics(edge_index: torch.Tensor, num_nodes: int) -> Dict:
    """
    Compute comprehensive graph statistics.

    Args:
        edge_index: Edge indices [2, num_edges]
        num_nodes: Total number of nodes

    Returns:
        Dictionary with graph statistics
    """
    num_edges = edge_index.shape[1] if edge_index.numel() > 0 else 0

    degree_stats = compute_degree_distribution(edge_index, num_nodes)

    max_edges = num_nodes * (num_nodes - 1)
    density = num_edges / max_edges if max_edges > 0 else 0

    graph = to_networkx(
        Data(edge_index=edge_index.cpu(), num_nodes=num_nodes),
        to_undirected=True
    )
    components = list(nx.connected_components(graph))

    return {
        'num_nodes': num_nodes,
        'num_edges': num_edges,
        'density': density,
        'avg_degree': degree_stats['mean'],
        'max_degree': degree_stats['max'],
        'min_degree': degree_stats['min'],
        'isolated_nodes': degree_stats['isolated_nodes'],
        'num_components': len(components),
        'largest_component': max((len(c) for c in components), default=0),
        'is_undirected': is_undirected(edge_index)
    }


def is_undirected(edge_index: torch.Tensor) -> bool:
    """Check whether every edge (s, d) has a matching reverse edge (d, s)."""
    if edge_index.numel() == 0:
        return True
    forward = set(zip(edge_index[0].tolist(), edge_index[1].tolist()))
    return all((d, s) in forward for s, d in forward)


def to_undirected(edge_index: torch.Tensor) -> torch.Tensor:
    """
    Convert directed edge_index to undirected.

    Args:
        edge_index: Directed edge indices [2, num_edges]

    Returns:
        Undirected edge indices (with duplicates and self-loops removed)
    """
    if edge_index.numel() == 0:
        return edge_index

    reverse_edges = edge_index.flip(0)
    all_edges = torch.cat([edge_index, reverse_edges], dim=1)
    all_edges = all_edges[:, all_edges[0] != all_edges[1]]

    return torch.unique(all_edges, dim=1)

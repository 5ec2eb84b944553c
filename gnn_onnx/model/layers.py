"""
Transform Layer Variants.

Every layer in a node classifier is one of two explicit variants, chosen
when the model is built:

- PlainTransform: a per-node linear map; the edge index is never read.
- GraphTransform: a PyTorch Geometric message-passing layer (GCN, GAT,
  GraphConv or SAGE) that aggregates neighbor features along the edge index.

The forward pass of the model only calls ``layer(x, edge_index)``; it never
inspects which variant it holds.
"""

import torch
import torch.nn as nn
from torch_geometric.nn import GCNConv, GATConv, GraphConv, SAGEConv
from typing import Optional

PLAIN_LAYER = 'Linear'

GRAPH_LAYERS = {
    'GCN': GCNConv,
    'GAT': GATConv,
    'GraphConv': GraphConv,
    'SAGE': SAGEConv,
}

LAYER_KINDS = (PLAIN_LAYER,) + tuple(GRAPH_LAYERS)


class PlainTransform(nn.Module):
    """Linear transform applied to each node independently."""

    uses_edges = False

    def __init__(self, in_channels: int, out_channels: int, bias: bool = True):
        super().__init__()
        self.in_channels = in_channels
        self.out_channels = out_channels
        self.linear = nn.Linear(in_channels, out_channels, bias=bias)

    def forward(
        self,
        x: torch.Tensor,
        edge_index: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        return self.linear(x)

    def reset_parameters(self):
        self.linear.reset_parameters()


class GraphTransform(nn.Module):
    """
    Message-passing transform backed by a PyTorch Geometric convolution.

    The aggregation rule (degree-normalized sum for GCN, attention for GAT,
    mean for SAGE, plain sum for GraphConv) is whatever the wrapped layer
    implements.

    Example:
        >>> layer = GraphTransform('GCN', in_channels=1433, out_channels=16)
        >>> out = layer(x, edge_index)  # [num_nodes, 16]
    """

    uses_edges = True

    def __init__(
        self,
        layer_name: str,
        in_channels: int,
        out_channels: int,
        **layer_kwargs
    ):
        """
        Initialize graph transform.

        Args:
            layer_name: Key into GRAPH_LAYERS ('GCN', 'GAT', 'GraphConv', 'SAGE')
            in_channels: Input feature dimension
            out_channels: Output feature dimension
            **layer_kwargs: Extra arguments for the convolution (e.g. heads for GAT)
        """
        super().__init__()

        if layer_name not in GRAPH_LAYERS:
            raise ValueError(
                f"Unknown graph layer: {layer_name!r} "
                f"(expected one of {sorted(GRAPH_LAYERS)})"
            )

        self.layer_name = layer_name
        self.in_channels = in_channels
        self.out_channels = out_channels

        if layer_name == 'GAT':
            # Keep the output width at out_channels regardless of head count
            layer_kwargs.setdefault('concat', False)

        self.conv = GRAPH_LAYERS[layer_name](in_channels, out_channels, **layer_kwargs)

    def forward(self, x: torch.Tensor, edge_index: torch.Tensor) -> torch.Tensor:
        return self.conv(x, edge_index)

    def reset_parameters(self):
        self.conv.reset_parameters()


def make_transform(
    layer_name: str,
    in_channels: int,
    out_channels: int,
    **layer_kwargs
) -> nn.Module:
    """
    Create the transform variant for ``layer_name``.

    Args:
        layer_name: 'Linear' or one of the graph layer names
        in_channels: Input feature dimension
        out_channels: Output feature dimension
        **layer_kwargs: Passed through to graph layers

    Returns:
        PlainTransform or GraphTransform

    Raises:
        ValueError: If layer_name is unknown
    """
    if layer_name == PLAIN_LAYER:
        return PlainTransform(in_channels, out_channels)
    if layer_name in GRAPH_LAYERS:
        return GraphTransform(layer_name, in_channels, out_channels, **layer_kwargs)
    raise ValueError(
        f"Unknown layer kind: {layer_name!r} (expected one of {list(LAYER_KINDS)})"
    )

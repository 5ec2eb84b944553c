"""
Node Classifier Model.

This module implements the model used for node classification on citation
graphs. A single class covers both the MLP baseline and the message-passing
GNN: the difference is only which transform variant fills each layer slot.

Architecture (num_layers=2, GCN):
    Node Features [N, 1433]    Edge Index [2, E]
           │                        │
           ▼                        │
    GCNConv(1433, 16) ◄─────────────┤
           │                        │
    ReLU + Dropout                  │
           │                        │
           ▼                        │
    GCNConv(16, 7) ◄────────────────┘
           │
           ▼
    Logits [N, 7]

With layer_name='Linear' the convolutions become nn.Linear and the edge
index is ignored.
"""

import torch
import torch.nn as nn
from typing import Optional, Dict, Any

from .layers import make_transform, PLAIN_LAYER, LAYER_KINDS
from ..utils.graph_utils import check_edge_index

MODEL_NAMES = ('MLP', 'GNN')


def _is_exporting() -> bool:
    """True while the model is being traced for TorchScript/ONNX export."""
    return torch.jit.is_tracing() or torch.onnx.is_in_onnx_export()


class NodeClassifier(nn.Module):
    """
    Stack of transform layers producing per-node class logits.

    Example:
        >>> import torch
        >>> from gnn_onnx.model import NodeClassifier
        >>>
        >>> model = NodeClassifier(
        ...     in_channels=1433,
        ...     hidden_channels=16,
        ...     out_channels=7,
        ...     num_layers=2,
        ...     layer_name='GCN'
        ... )
        >>> features = torch.randn(2708, 1433)
        >>> edge_index = torch.randint(0, 2708, (2, 10556))
        >>> logits = model(features, edge_index)
        >>> print(logits.shape)  # [2708, 7]
    """

    def __init__(
        self,
        in_channels: int,
        hidden_channels: int,
        out_channels: int,
        num_layers: int = 2,
        layer_name: str = 'GCN',
        dropout: float = 0.1,
        **layer_kwargs
    ):
        """
        Initialize node classifier.

        Args:
            in_channels: Number of input features per node
            hidden_channels: Hidden layer dimension
            out_channels: Number of classes
            num_layers: Number of transform layers (>= 1)
            layer_name: 'Linear' for an MLP, or 'GCN', 'GAT', 'GraphConv', 'SAGE'
            dropout: Dropout rate applied after each hidden layer
            **layer_kwargs: Extra arguments for graph layers
        """
        super().__init__()

        if layer_name not in LAYER_KINDS:
            raise ValueError(
                f"Unknown layer kind: {layer_name!r} (expected one of {list(LAYER_KINDS)})"
            )
        if num_layers < 1:
            raise ValueError(f"num_layers must be >= 1, got {num_layers}")
        for name, value in (('in_channels', in_channels),
                            ('hidden_channels', hidden_channels),
                            ('out_channels', out_channels)):
            if value < 1:
                raise ValueError(f"{name} must be positive, got {value}")
        if not 0.0 <= dropout < 1.0:
            raise ValueError(f"dropout must be in [0, 1), got {dropout}")

        self.in_channels = in_channels
        self.hidden_channels = hidden_channels
        self.out_channels = out_channels
        self.num_layers = num_layers
        self.layer_name = layer_name
        self.dropout_rate = dropout
        self.layer_kwargs = dict(layer_kwargs)
        self.uses_edges = layer_name != PLAIN_LAYER

        dims = [in_channels] + [hidden_channels] * (num_layers - 1) + [out_channels]
        self.layers = nn.ModuleList([
            make_transform(layer_name, dims[i], dims[i + 1], **layer_kwargs)
            for i in range(num_layers)
        ])

        self.activation = nn.ReLU()
        self.dropout = nn.Dropout(dropout)

    def forward(
        self,
        x: torch.Tensor,
        edge_index: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        """
        Compute class logits for every node.

        Args:
            x: Node features [num_nodes, in_channels]
            edge_index: Edge indices [2, num_edges]; required for graph layers,
                ignored for Linear

        Returns:
            logits: [num_nodes, out_channels]
        """
        if self.uses_edges:
            if edge_index is None:
                raise ValueError(f"{self.layer_name} model requires an edge_index")
            if not _is_exporting():
                check_edge_index(edge_index, x.size(0))

        for layer in self.layers[:-1]:
            x = layer(x, edge_index)
            x = self.activation(x)
            x = self.dropout(x)

        # Last layer (no activation, no dropout)
        return self.layers[-1](x, edge_index)

    def reset_parameters(self):
        """Reset all learnable parameters."""
        for layer in self.layers:
            layer.reset_parameters()

    def count_parameters(self) -> int:
        """Count total number of trainable parameters."""
        return sum(p.numel() for p in self.parameters() if p.requires_grad)

    def hparams(self) -> Dict[str, Any]:
        """Constructor arguments, stored in checkpoints so the model can be rebuilt."""
        hparams = {
            'in_channels': self.in_channels,
            'hidden_channels': self.hidden_channels,
            'out_channels': self.out_channels,
            'num_layers': self.num_layers,
            'layer_name': self.layer_name,
            'dropout': self.dropout_rate,
        }
        hparams.update(self.layer_kwargs)
        return hparams


def build_model(seed: Optional[int] = None, **kwargs) -> NodeClassifier:
    """
    Build a NodeClassifier with parameters initialized from ``seed``.

    The global RNG state is left untouched.

    Args:
        seed: Seed for parameter initialization (None = current RNG state)
        **kwargs: NodeClassifier arguments

    Returns:
        NodeClassifier
    """
    if seed is None:
        return NodeClassifier(**kwargs)

    with torch.random.fork_rng(devices=[]):
        torch.manual_seed(seed)
        return NodeClassifier(**kwargs)


def create_model(
    config: dict,
    in_channels: int,
    out_channels: int,
    model_name: str = 'GNN',
    seed: Optional[int] = None,
    device: Optional[torch.device] = None
) -> NodeClassifier:
    """
    Create a node classifier from config.

    Args:
        config: Configuration dictionary with a 'model' section
        in_channels: Number of input features
        out_channels: Number of classes
        model_name: 'MLP' (Linear layers) or 'GNN' (config layer_name)
        seed: Parameter initialization seed (defaults to config 'seed')
        device: Device to place model on

    Returns:
        NodeClassifier
    """
    if model_name not in MODEL_NAMES:
        raise ValueError(f"Unknown model name: {model_name!r} (expected one of {list(MODEL_NAMES)})")

    model_config = config.get('model', {})
    layer_name = PLAIN_LAYER if model_name == 'MLP' else model_config.get('layer_name', 'GCN')

    model = build_model(
        seed=config.get('seed') if seed is None else seed,
        in_channels=in_channels,
        hidden_channels=model_config.get('hidden_dim', 16),
        out_channels=out_channels,
        num_layers=model_config.get('num_layers', 2),
        layer_name=layer_name,
        dropout=model_config.get('dropout', 0.1)
    )

    if device is not None:
        model = model.to(device)

    return model


def model_from_checkpoint(checkpoint: Dict[str, Any]) -> NodeClassifier:
    """
    Rebuild a model from a checkpoint dictionary saved by the trainer.

    Args:
        checkpoint: Dictionary with 'hparams' and 'model_state_dict'

    Returns:
        NodeClassifier with loaded weights
    """
    if 'hparams' not in checkpoint:
        raise KeyError("Checkpoint has no 'hparams'; cannot rebuild model")

    model = NodeClassifier(**checkpoint['hparams'])
    model.load_state_dict(checkpoint['model_state_dict'])
    return model

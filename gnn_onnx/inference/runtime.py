"""
ONNX Runtime Session Module.

This module wraps an ONNX Runtime inference session for exported node
classifiers. The session is the only resource with an explicit lifecycle:
it is acquired on construction and released by ``close()``, which the
context manager calls even when inference raises.

Example:
    >>> from gnn_onnx.inference import OnnxModelSession
    >>>
    >>> with OnnxModelSession('exports/gnn_model.onnx') as session:
    ...     logits = session.run(features, edge_index)
    >>> logits.shape  # (2708, 7)
"""

import numpy as np
import onnxruntime as ort
import torch
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..export.onnx_export import TensorSpec, INPUT_NODES, INPUT_EDGES

ArrayLike = Union[np.ndarray, torch.Tensor]

_ORT_DTYPES = {
    'tensor(float)': 'float32',
    'tensor(double)': 'float64',
    'tensor(float16)': 'float16',
    'tensor(int64)': 'int64',
    'tensor(int32)': 'int32',
    'tensor(bool)': 'bool',
}


def _to_numpy(values: ArrayLike, dtype) -> np.ndarray:
    if isinstance(values, torch.Tensor):
        values = values.detach().cpu().numpy()
    return np.ascontiguousarray(values, dtype=dtype)


def _check_static_shape(spec: TensorSpec, array: np.ndarray) -> None:
    """Reject arrays that contradict the fixed dimensions of an input."""
    if len(spec.shape) != array.ndim:
        raise ValueError(
            f"Input {spec.name!r} expects rank {len(spec.shape)}, got shape {list(array.shape)}"
        )
    for expected, actual in zip(spec.shape, array.shape):
        if isinstance(expected, int) and expected != actual:
            raise ValueError(
                f"Input {spec.name!r} expects shape {spec.shape}, got {list(array.shape)}"
            )


def _check_edges(edges: np.ndarray, num_nodes: int) -> None:
    if edges.ndim != 2 or edges.shape[0] != 2:
        raise ValueError(f"edges must have shape [2, num_edges], got {list(edges.shape)}")
    if edges.size and (edges.min() < 0 or edges.max() >= num_nodes):
        raise ValueError(
            f"edges contain node indices in [{edges.min()}, {edges.max()}], "
            f"expected all in [0, {num_nodes})"
        )


class OnnxModelSession:
    """
    ONNX Runtime session for an exported node classifier.

    Feeds float32 node features and int64 edge indices under the input
    names the artifact declares, and returns the single logits output.
    """

    def __init__(
        self,
        model_path: Union[str, Path],
        providers: Optional[Sequence[str]] = None
    ):
        """
        Open an inference session.

        Args:
            model_path: Path to the .onnx artifact
            providers: ONNX Runtime execution providers (default: CPU)
        """
        self.model_path = Path(model_path)
        if not self.model_path.is_file():
            raise FileNotFoundError(f"ONNX artifact not found: {self.model_path}")

        self.providers = list(providers) if providers else ['CPUExecutionProvider']
        self._session: Optional[ort.InferenceSession] = ort.InferenceSession(
            str(self.model_path), providers=self.providers
        )

    @property
    def session(self) -> ort.InferenceSession:
        if self._session is None:
            raise RuntimeError(f"Session for {self.model_path} is closed")
        return self._session

    @property
    def closed(self) -> bool:
        return self._session is None

    @property
    def input_specs(self) -> List[TensorSpec]:
        return [
            TensorSpec(name=i.name, shape=list(i.shape), dtype=_ORT_DTYPES.get(i.type, i.type))
            for i in self.session.get_inputs()
        ]

    @property
    def output_specs(self) -> List[TensorSpec]:
        return [
            TensorSpec(name=o.name, shape=list(o.shape), dtype=_ORT_DTYPES.get(o.type, o.type))
            for o in self.session.get_outputs()
        ]

    def run(
        self,
        features: ArrayLike,
        edge_index: Optional[ArrayLike] = None
    ) -> np.ndarray:
        """
        Run inference.

        Args:
            features: Node features [num_nodes, feature_dim]
            edge_index: Edge indices [2, num_edges]; required when the
                artifact declares an 'edges' input

        Returns:
            Logits [num_nodes, num_classes] as float32 numpy array

        Raises:
            ValueError: On shape mismatch or out-of-range edge indices
        """
        nodes = _to_numpy(features, np.float32)
        if nodes.ndim != 2:
            raise ValueError(f"features must be 2-D, got shape {list(nodes.shape)}")

        feeds = {}
        for spec in self.input_specs:
            if spec.name == INPUT_NODES:
                array = nodes
            elif spec.name == INPUT_EDGES:
                if edge_index is None:
                    raise ValueError("Artifact declares an 'edges' input but no edge_index was given")
                array = _to_numpy(edge_index, np.int64)
                _check_edges(array, nodes.shape[0])
            else:
                raise ValueError(f"Artifact declares unexpected input {spec.name!r}")

            _check_static_shape(spec, array)
            feeds[spec.name] = array

        output_name = self.session.get_outputs()[0].name
        return self.session.run([output_name], feeds)[0]

    def close(self) -> None:
        """Release the runtime session. Safe to call more than once."""
        self._session = None

    def __enter__(self) -> 'OnnxModelSession':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = 'closed' if self.closed else 'open'
        return f"OnnxModelSession({str(self.model_path)!r}, {state})"

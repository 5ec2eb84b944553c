"""
Numerical Equivalence Check.

Runs the original PyTorch model and its exported ONNX artifact on the same
inputs and compares the outputs.

A check passes only if all of the following hold:
- max |logit_torch - logit_onnx| <= logit_atol
- max |softmax_torch - softmax_onnx| <= prob_atol
- top-1 agreement >= min_agreement

A shape mismatch means the artifact no longer matches the model and raises
ExportSchemaError. Numerical drift is reported, not raised; callers that
want a hard failure use ``report.raise_for_drift()``.
"""

import numpy as np
import torch
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union, Any

from ..model.classifier import NodeClassifier
from ..utils.metrics import compare_outputs
from .runtime import OnnxModelSession

ArrayLike = Union[np.ndarray, torch.Tensor]

DEFAULT_LOGIT_ATOL = 1e-3
DEFAULT_PROB_ATOL = 1e-4
DEFAULT_MIN_AGREEMENT = 0.95


class ExportSchemaError(AssertionError):
    """Exported artifact output does not have the original model's shape."""


class NumericalDriftError(RuntimeError):
    """Exported artifact output deviates beyond tolerance."""


@dataclass
class EquivalenceReport:
    """Outcome of comparing original and exported model outputs."""
    output_shape: Tuple[int, ...]
    max_abs_diff: float
    mean_abs_diff: float
    max_prob_diff: float
    agreement: float
    logit_atol: float = DEFAULT_LOGIT_ATOL
    prob_atol: float = DEFAULT_PROB_ATOL
    min_agreement: float = DEFAULT_MIN_AGREEMENT
    failures: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        lines = [
            f"Equivalence check: {status}",
            f"  Output shape:        {list(self.output_shape)}",
            f"  Max |logit diff|:    {self.max_abs_diff:.3e} (atol {self.logit_atol:.1e})",
            f"  Mean |logit diff|:   {self.mean_abs_diff:.3e}",
            f"  Max |softmax diff|:  {self.max_prob_diff:.3e} (atol {self.prob_atol:.1e})",
            f"  Top-1 agreement:     {self.agreement:.4f} (min {self.min_agreement:.2f})",
        ]
        lines.extend(f"  ✗ {failure}" for failure in self.failures)
        return "\n".join(lines)

    def raise_for_drift(self) -> None:
        """Raise NumericalDriftError if any tolerance was exceeded."""
        if not self.passed:
            raise NumericalDriftError("; ".join(self.failures))

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['output_shape'] = list(self.output_shape)
        result['passed'] = self.passed
        return result


def compare_logits(
    original: ArrayLike,
    exported: ArrayLike,
    mask: Optional[ArrayLike] = None,
    logit_atol: float = DEFAULT_LOGIT_ATOL,
    prob_atol: float = DEFAULT_PROB_ATOL,
    min_agreement: float = DEFAULT_MIN_AGREEMENT
) -> EquivalenceReport:
    """
    Compare two logit matrices against the tolerances.

    Args:
        original: Logits from the PyTorch model
        exported: Logits from the ONNX artifact
        mask: Optional node mask restricting the agreement metric
        logit_atol: Max allowed absolute logit difference
        prob_atol: Max allowed absolute softmax difference
        min_agreement: Min fraction of nodes with identical argmax

    Returns:
        EquivalenceReport

    Raises:
        ExportSchemaError: If the shapes differ
    """
    original_shape = tuple(original.shape)
    exported_shape = tuple(exported.shape)
    if original_shape != exported_shape:
        raise ExportSchemaError(
            f"Exported output shape {list(exported_shape)} != original {list(original_shape)}"
        )

    stats = compare_outputs(original, exported, mask)

    failures = []
    if not stats['max_abs_diff'] <= logit_atol:
        failures.append(
            f"max logit difference {stats['max_abs_diff']:.3e} exceeds {logit_atol:.1e}"
        )
    if not stats['max_prob_diff'] <= prob_atol:
        failures.append(
            f"max softmax difference {stats['max_prob_diff']:.3e} exceeds {prob_atol:.1e}"
        )
    if not stats['agreement'] >= min_agreement:
        failures.append(
            f"top-1 agreement {stats['agreement']:.4f} below {min_agreement:.2f}"
        )

    return EquivalenceReport(
        output_shape=original_shape,
        max_abs_diff=stats['max_abs_diff'],
        mean_abs_diff=stats['mean_abs_diff'],
        max_prob_diff=stats['max_prob_diff'],
        agreement=stats['agreement'],
        logit_atol=logit_atol,
        prob_atol=prob_atol,
        min_agreement=min_agreement,
        failures=failures
    )


def run_original(
    model: NodeClassifier,
    features: torch.Tensor,
    edge_index: torch.Tensor
) -> torch.Tensor:
    """
    Run the PyTorch model in eval mode without gradient tracking.

    The model's previous train/eval mode is restored afterwards.
    """
    device = next(model.parameters()).device
    was_training = model.training
    model.eval()
    try:
        with torch.no_grad():
            return model(features.to(device), edge_index.to(device)).cpu()
    finally:
        model.train(was_training)


def check_equivalence(
    model: NodeClassifier,
    onnx_path: Union[str, Path],
    features: torch.Tensor,
    edge_index: torch.Tensor,
    mask: Optional[torch.Tensor] = None,
    logit_atol: float = DEFAULT_LOGIT_ATOL,
    prob_atol: float = DEFAULT_PROB_ATOL,
    min_agreement: float = DEFAULT_MIN_AGREEMENT,
    providers: Optional[Sequence[str]] = None,
    verbose: bool = True
) -> EquivalenceReport:
    """
    Check that an exported artifact reproduces the original model.

    Args:
        model: Original trained model
        onnx_path: Exported artifact
        features: Node features [num_nodes, feature_dim]
        edge_index: Edge indices [2, num_edges]
        mask: Optional node mask for the agreement metric
        logit_atol: Max allowed absolute logit difference
        prob_atol: Max allowed absolute softmax difference
        min_agreement: Min fraction of nodes with identical argmax
        providers: ONNX Runtime execution providers
        verbose: Print the report

    Returns:
        EquivalenceReport (check ``report.passed``)

    Raises:
        ExportSchemaError: If the output shapes differ
        FileNotFoundError: If the artifact does not exist
    """
    original = run_original(model, features, edge_index)

    with OnnxModelSession(onnx_path, providers=providers) as session:
        exported = session.run(features, edge_index)

    report = compare_logits(
        original, exported,
        mask=mask,
        logit_atol=logit_atol,
        prob_atol=prob_atol,
        min_agreement=min_agreement
    )

    if verbose:
        print(report.summary())

    return report


def tolerances_from_config(config: Dict[str, Any]) -> Dict[str, float]:
    """Equivalence tolerances from the 'verification' config section."""
    verification = config.get('verification', {})
    return {
        'logit_atol': verification.get('logit_atol', DEFAULT_LOGIT_ATOL),
        'prob_atol': verification.get('prob_atol', DEFAULT_PROB_ATOL),
        'min_agreement': verification.get('min_agreement', DEFAULT_MIN_AGREEMENT),
    }


def check_equivalence_from_config(
    model: NodeClassifier,
    onnx_path: Union[str, Path],
    features: torch.Tensor,
    edge_index: torch.Tensor,
    config: Dict[str, Any],
    mask: Optional[torch.Tensor] = None,
    verbose: bool = True
) -> EquivalenceReport:
    """Run check_equivalence with tolerances from the 'verification' config section."""
    return check_equivalence(
        model, onnx_path, features, edge_index,
        mask=mask,
        verbose=verbose,
        **tolerances_from_config(config)
    )

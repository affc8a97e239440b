"""
Evaluation metrics for the playlist-context classifiers.

Confusion matrices follow scikit-learn's orientation throughout: rows are the
actual category, columns the predicted one, both in Category declaration
order (night, work, lounge). Per-class statistics are one-vs-rest.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, confusion_matrix

from .records import Category

if TYPE_CHECKING:
    from .trainer import TrainingReport


@dataclass
class ClassStatistics:
    """One-vs-rest statistics for a single category"""
    label: str
    support: int
    sensitivity: float
    specificity: float
    balanced_accuracy: float


@dataclass
class EvaluationResult:
    """Held-out performance of one fitted model"""
    labels: List[str]
    confusion: List[List[int]]  # rows = actual, columns = predicted
    accuracy: float
    n_test: int
    per_class: List[ClassStatistics] = field(default_factory=list)

    def confusion_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.confusion,
            index=pd.Index(self.labels, name="actual"),
            columns=pd.Index(self.labels, name="predicted"),
        )

    def per_class_frame(self) -> pd.DataFrame:
        return pd.DataFrame([asdict(s) for s in self.per_class]).set_index("label")


def _ratio(numerator: float, denominator: float) -> float:
    return float(numerator / denominator) if denominator > 0 else 0.0


def class_statistics(matrix: np.ndarray, labels: Sequence[str]) -> List[ClassStatistics]:
    """
    Derive sensitivity/specificity per class from a square confusion matrix.

    Args:
        matrix: counts with rows = actual, columns = predicted
        labels: class labels in matrix order

    Returns:
        One ClassStatistics per label; classes with no positives (or no
        negatives) score 0.0 for the undefined ratio.
    """
    total = matrix.sum()
    stats = []
    for i, label in enumerate(labels):
        tp = matrix[i, i]
        fn = matrix[i, :].sum() - tp
        fp = matrix[:, i].sum() - tp
        tn = total - tp - fn - fp
        sensitivity = _ratio(tp, tp + fn)
        specificity = _ratio(tn, tn + fp)
        stats.append(ClassStatistics(
            label=label,
            support=int(tp + fn),
            sensitivity=sensitivity,
            specificity=specificity,
            balanced_accuracy=(sensitivity + specificity) / 2.0,
        ))
    return stats


def evaluate_predictions(
    y_true: Sequence[str],
    y_pred: Sequence[str],
    labels: Optional[Sequence[str]] = None,
) -> EvaluationResult:
    if labels is None:
        labels = Category.labels()
    labels = list(labels)
    y_true = np.asarray(y_true, dtype=object)
    y_pred = np.asarray(y_pred, dtype=object)

    matrix = confusion_matrix(y_true, y_pred, labels=labels)
    return EvaluationResult(
        labels=labels,
        confusion=matrix.astype(int).tolist(),
        accuracy=float(accuracy_score(y_true, y_pred)),
        n_test=int(len(y_true)),
        per_class=class_statistics(matrix, labels),
    )


def ranked_importances(feature_names: Sequence[str], scores: Sequence[float]) -> Dict[str, float]:
    """Predictor -> importance, highest first, zero scores left out."""
    series = pd.Series(np.asarray(scores, dtype=float), index=list(feature_names))
    if (series < 0).any():
        raise ValueError(f"Negative importance scores: {series[series < 0].to_dict()}")
    series = series[series > 0].sort_values(ascending=False, kind="mergesort")
    return {name: float(score) for name, score in series.items()}


def report_to_dict(report: "TrainingReport") -> Dict[str, Any]:
    """JSON-friendly view of a training report (estimators are left out)."""
    def convert_numpy(obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        return obj

    def recursive_convert(obj):
        if isinstance(obj, dict):
            return {k: recursive_convert(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [recursive_convert(item) for item in obj]
        else:
            return convert_numpy(obj)

    results = {
        "seed": report.seed,
        "n_train": report.split.n_train,
        "n_test": report.split.n_test,
        "features": report.split.feature_names,
        "models": {},
    }
    for result in report.results():
        results["models"][result.model.name] = {
            "best_params": result.model.best_params,
            "cv_accuracy": result.model.cv_accuracy,
            "evaluation": asdict(result.evaluation),
            "importances": result.importances,
        }
    return recursive_convert(results)


def save_results(report: "TrainingReport", filepath: Union[str, Path]) -> Path:
    """Save evaluation results to JSON file"""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as f:
        json.dump(report_to_dict(report), f, indent=2)
    return filepath


def print_evaluation_summary(report: "TrainingReport") -> None:
    print("\n" + "=" * 60)
    print("PLAYLIST CONTEXT CLASSIFICATION SUMMARY")
    print("=" * 60)
    print(f"Train rows: {report.split.n_train} | Test rows: {report.split.n_test} | Seed: {report.seed}")

    for result in report.results():
        model, evaluation = result.model, result.evaluation
        print(f"\n{model.name.upper()}:")
        print("-" * 20)
        print(f"  Selected: {model.best_params}")
        print(f"  CV accuracy:   {model.cv_accuracy:6.4f}")
        print(f"  Test accuracy: {evaluation.accuracy:6.4f}")
        print("  Confusion (rows = actual, columns = predicted):")
        for line in evaluation.confusion_frame().to_string().splitlines():
            print(f"    {line}")
        for stats in evaluation.per_class:
            print(
                f"  {stats.label:8s} sens {stats.sensitivity:5.3f}  "
                f"spec {stats.specificity:5.3f}  bal {stats.balanced_accuracy:5.3f}"
            )
        print("  Importances:")
        for name, score in result.importances.items():
            print(f"    {name:20s}: {score:6.4f}")

    print("\n" + "=" * 60)

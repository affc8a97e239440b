from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.ensemble import RandomForestClassifier
from sklearn.model_selection import (
    GridSearchCV,
    RepeatedStratifiedKFold,
    StratifiedKFold,
    train_test_split,
)
from sklearn.tree import DecisionTreeClassifier

from .errors import FitError, SchemaError
from .evaluation import EvaluationResult, evaluate_predictions, ranked_importances
from .records import Category


TARGET = "category"

logger = logging.getLogger(__name__)


# Trainer configuration
@dataclass
class TrainerConfig:
    test_size: float = 0.25
    cv_folds: int = 10              # folds for both searches
    cv_repeats: int = 10            # repeats of the tree's k-fold
    max_depth_candidates: int = 10  # tree depths 1..N
    stratify: bool = True           # stratify the train/test split on category
    n_jobs: Optional[int] = None


@dataclass
class DatasetSplit:
    X_train: pd.DataFrame
    X_test: pd.DataFrame
    y_train: pd.Series
    y_test: pd.Series

    @property
    def feature_names(self) -> List[str]:
        return self.X_train.columns.tolist()

    @property
    def n_train(self) -> int:
        return len(self.X_train)

    @property
    def n_test(self) -> int:
        return len(self.X_test)


@dataclass
class TrainedModel:
    name: str
    estimator: BaseEstimator
    best_params: Dict[str, Any]
    cv_accuracy: float
    feature_names: List[str]
    cv_results: pd.DataFrame = field(repr=False, default_factory=pd.DataFrame)


@dataclass
class ModelResult:
    model: TrainedModel
    evaluation: EvaluationResult
    importances: Dict[str, float]


@dataclass
class TrainingReport:
    seed: int
    split: DatasetSplit
    tree: ModelResult
    forest: ModelResult

    def results(self) -> List[ModelResult]:
        return [self.tree, self.forest]


def assert_numeric_predictors(labeled: pd.DataFrame) -> None:
    predictors = labeled.drop(columns=[TARGET], errors="ignore")
    non_numeric = [c for c in predictors.columns if not pd.api.types.is_numeric_dtype(predictors[c])]
    if non_numeric:
        raise SchemaError(f"Non-numeric predictor column(s): {', '.join(non_numeric)}")


def prepare_labeled_dataset(table: pd.DataFrame) -> pd.DataFrame:
    """
    Restrict an assembled table to the category target plus numeric predictors.

    Raises:
        SchemaError: unknown or missing category labels, or no numeric predictors
    """
    if TARGET not in table.columns:
        raise SchemaError(f"Table has no '{TARGET}' column")

    labels = [Category.parse(v).value for v in table[TARGET].astype(object)]
    present = set(labels)
    absent = [label for label in Category.labels() if label not in present]
    if absent:
        raise SchemaError(f"Category level(s) absent from data: {', '.join(absent)}")

    predictors = table.drop(columns=[TARGET]).select_dtypes(include="number")
    if predictors.shape[1] == 0:
        raise SchemaError("No numeric predictor columns")

    labeled = predictors.copy()
    labeled.insert(0, TARGET, pd.Categorical(labels, categories=Category.labels()))
    assert_numeric_predictors(labeled)
    return labeled


def split_dataset(
    labeled: pd.DataFrame,
    seed: int,
    test_size: float = 0.25,
    stratify: bool = True,
) -> DatasetSplit:
    X = labeled.drop(columns=[TARGET])
    y = labeled[TARGET].astype(str)
    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=test_size, random_state=seed, stratify=y if stratify else None
    )
    return DatasetSplit(X_train=X_train, X_test=X_test, y_train=y_train, y_test=y_test)


class ClassifierTrainer:
    """Grid-searched classifier: fit -> TrainedModel, then predict / importances."""

    name = "classifier"

    def __init__(self, config: TrainerConfig, seed: int) -> None:
        self.config = config
        self.seed = seed

    def estimator(self) -> BaseEstimator:
        raise NotImplementedError

    def param_grid(self, n_features: int) -> Dict[str, List[Any]]:
        raise NotImplementedError

    def cv(self):
        raise NotImplementedError

    def fit(self, X: pd.DataFrame, y: pd.Series) -> TrainedModel:
        grid = self.param_grid(X.shape[1])
        search = GridSearchCV(
            self.estimator(),
            grid,
            scoring="accuracy",
            cv=self.cv(),
            refit=True,
            n_jobs=self.config.n_jobs,
            error_score="raise",
        )
        try:
            search.fit(X, y)
        except Exception as exc:
            raise FitError(
                f"{self.name} search failed over {grid}: {exc}",
                model_name=self.name,
                param_grid=grid,
            ) from exc

        logger.info("%s: selected %s (cv accuracy %.4f)", self.name, search.best_params_, search.best_score_)
        return TrainedModel(
            name=self.name,
            estimator=search.best_estimator_,
            best_params=dict(search.best_params_),
            cv_accuracy=float(search.best_score_),
            feature_names=X.columns.tolist(),
            cv_results=pd.DataFrame(search.cv_results_),
        )

    def predict(self, model: TrainedModel, X: pd.DataFrame) -> np.ndarray:
        return model.estimator.predict(X[model.feature_names])

    def importances(self, model: TrainedModel) -> Dict[str, float]:
        return ranked_importances(model.feature_names, model.estimator.feature_importances_)

    def evaluate(self, model: TrainedModel, split: DatasetSplit) -> ModelResult:
        predictions = self.predict(model, split.X_test)
        return ModelResult(
            model=model,
            evaluation=evaluate_predictions(split.y_test, predictions, Category.labels()),
            importances=self.importances(model),
        )


class DecisionTreeTrainer(ClassifierTrainer):
    name = "decision_tree"

    def estimator(self) -> BaseEstimator:
        return DecisionTreeClassifier(random_state=self.seed)

    def param_grid(self, n_features: int) -> Dict[str, List[Any]]:
        return {"max_depth": list(range(1, self.config.max_depth_candidates + 1))}

    def cv(self):
        return RepeatedStratifiedKFold(
            n_splits=self.config.cv_folds,
            n_repeats=self.config.cv_repeats,
            random_state=self.seed,
        )


class RandomForestTrainer(ClassifierTrainer):
    name = "random_forest"

    def estimator(self) -> BaseEstimator:
        return RandomForestClassifier(random_state=self.seed)

    def param_grid(self, n_features: int) -> Dict[str, List[Any]]:
        return {"max_features": list(range(1, n_features + 1))}

    def cv(self):
        return StratifiedKFold(n_splits=self.config.cv_folds, shuffle=True, random_state=self.seed)


def train_and_evaluate(
    table: pd.DataFrame,
    seed: int,
    config: Optional[TrainerConfig] = None,
) -> TrainingReport:
    """
    Prepare, split, fit both classifiers on one shared split and evaluate them.

    Args:
        table: assembled track table
        seed: fixes the split, the cross-validation folds and the estimators
        config: protocol settings; defaults to 10-fold CV (10 repeats for the tree)

    Returns:
        TrainingReport with the split and one ModelResult per classifier
    """
    config = config or TrainerConfig()
    labeled = prepare_labeled_dataset(table)
    split = split_dataset(labeled, seed, test_size=config.test_size, stratify=config.stratify)
    logger.info("Split %d rows into %d train / %d test", len(labeled), split.n_train, split.n_test)

    results = {}
    for trainer in (DecisionTreeTrainer(config, seed), RandomForestTrainer(config, seed)):
        model = trainer.fit(split.X_train, split.y_train)
        results[trainer.name] = trainer.evaluate(model, split)

    return TrainingReport(
        seed=seed,
        split=split,
        tree=results[DecisionTreeTrainer.name],
        forest=results[RandomForestTrainer.name],
    )

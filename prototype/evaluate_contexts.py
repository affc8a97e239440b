#!/usr/bin/env python3
"""
Batch run of the playlist-context analysis.
Fetches the three playlists, assembles the track table, trains the decision
tree and random forest, prints a summary and writes the artifacts.
"""

import logging
import sys
import time
from pathlib import Path

import joblib

from context_core.config import Settings
from context_core.dataset import assemble, load_dataset, save_dataset
from context_core.eda import EDA_FEATURES, category_counts, summarize_by_category
from context_core.errors import ContextPipelineError
from context_core.evaluation import print_evaluation_summary, save_results
from context_core.spotify_client import SpotifyClient
from context_core.trainer import TrainerConfig, train_and_evaluate


def build_dataset(settings: Settings, dataset_path: Path, refresh: bool = False):
    """Reuse a saved table unless a refresh is requested"""
    if dataset_path.exists() and not refresh:
        print(f"Loading saved dataset from {dataset_path}")
        return load_dataset(dataset_path)

    print("Fetching playlists and audio features...")
    client = SpotifyClient(settings)
    df = assemble(settings.require_playlists(), client)
    save_dataset(df, dataset_path)
    print(f"Saved {len(df)} tracks to {dataset_path}")
    return df


def main(argv=None):
    """Main evaluation function"""
    argv = sys.argv[1:] if argv is None else argv
    refresh = "--refresh" in argv
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("🎯 Starting Playlist Context Evaluation")
    print("=" * 50)

    settings = Settings.from_env()
    output_dir = settings.output_dir
    dataset_path = output_dir / "tracks.csv"

    try:
        df = build_dataset(settings, dataset_path, refresh=refresh)

        print("\n📊 CATEGORY COUNTS")
        for label, count in category_counts(df).items():
            print(f"{label:8s}: {count}")

        features = [f for f in EDA_FEATURES if f in df.columns]
        if features:
            print("\n📈 FEATURE SUMMARY")
            print(summarize_by_category(df, features).round(3).to_string())

        print("\nTraining classifiers...")
        start_time = time.time()
        report = train_and_evaluate(df, settings.seed, TrainerConfig())
        training_time = time.time() - start_time
    except ContextPipelineError as exc:
        print(f"\n❌ Run aborted at stage '{exc.stage}': {exc}")
        return 1

    print(f"Training Time: {training_time:.2f} seconds")
    print_evaluation_summary(report)

    results_file = save_results(report, output_dir / "evaluation_results.json")
    for result in report.results():
        joblib.dump(result.model.estimator, output_dir / f"{result.model.name}.joblib")

    print(f"\n💾 Results saved to: {results_file}")
    print("\n✅ Evaluation completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())

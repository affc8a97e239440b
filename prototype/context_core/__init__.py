"""Core modules for the playlist context classifier.

Modules:
- config: Settings for credentials, playlist ids and the random seed
- records: Category labels and typed track / audio feature records
- spotify_client: Spotify Web API client for playlists and audio features
- dataset: Assemble, save and load the labeled track table
- eda: Descriptive statistics and exploratory plotly figures
- trainer: Split, grid-search and fit the decision tree and random forest
- evaluation: Confusion matrices, per-class statistics and result export
- ui_helpers: Helpers to render the evaluation in Streamlit
"""

"""Hand detection: MediaPipe adapter and landmark normalization."""

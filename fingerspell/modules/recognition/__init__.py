"""
Recognition stages.

Provides:
    - FeatureEncoder: HandPose -> [1, 3, 21] tensor
    - LetterClassifier: PyTorch letter model wrapper
    - ClassificationGate: strict confidence threshold
    - StabilityFilter: leading-edge debounce for the stable letter
"""

"""Engine wrappers around scikit-learn estimators."""

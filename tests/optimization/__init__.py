"""
Optimization Module Tests

Test suites for the walk-forward optimization components:
    - Parameter grid enumeration and serialization
    - Walk-forward window scheduling
    - Overfitting detection and aggregation
    - Optimizer orchestration
    - Options presets and YAML configuration
"""

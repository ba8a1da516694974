"""
Structural steel takeoff estimator.

Line items in, weights, labor hours and marked-up costs out.
The derived-field pipeline is pure Python math; the conflict resolver and
undo/redo history keep multi-user editing of one takeoff consistent.
"""

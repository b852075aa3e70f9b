"""Design pattern demonstrations for the learning domain.

Illustrative code. The API relies on ``factory`` (module templates),
``strategy`` (module grading) and ``observer`` (progress milestones); the
remaining patterns only run through ``learntrack.patterns.demo``.
"""

"""Quizzes, attempts and grading."""

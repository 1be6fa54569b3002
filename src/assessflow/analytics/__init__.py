"""
Analytics

Shared heuristics used by every question type's analytics function.
"""

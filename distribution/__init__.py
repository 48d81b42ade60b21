"""Diagnosis-key distribution: time-partitioned export tree assembly."""

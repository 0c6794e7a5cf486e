"""
MediConnect

A FastAPI-based healthcare appointment booking service: doctors toggle their
availability, patients book appointments with online doctors, and patients
are emailed when a doctor comes online.
"""

__version__ = "1.0.0"

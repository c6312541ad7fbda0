"""sdk - Software Development Kit for ICARUS

Contains reusable modules for:
    - journal: Elite Dangerous journal and companion JSON readers
    - catalog: External star system catalog clients (EDSM)
    - logging: Centralized structured logging
"""

__version__ = "0.1.0"
__versionInfo__ = (0, 1, 0)

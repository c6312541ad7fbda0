"""
ICARUS Service Entry Point

Run the service as a standalone application:
    python -m icarus --config icarus/config.json
"""

from .main import main

if __name__ == '__main__':
    main()

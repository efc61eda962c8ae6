"""Allow running the service with ``python -m image_api``."""

from image_api.service import main

if __name__ == "__main__":
    main()

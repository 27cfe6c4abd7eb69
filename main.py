"""Entry point for the canary service."""

from canary.service import main

if __name__ == "__main__":
    main()

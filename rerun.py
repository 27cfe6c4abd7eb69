"""Entry point for the offline reclassification job. Stop the service first."""

from canary.rerun import main

if __name__ == "__main__":
    main()

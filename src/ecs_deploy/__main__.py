"""Allow ``python -m ecs_deploy``."""

from ecs_deploy.cli.main import main

if __name__ == "__main__":
    main()

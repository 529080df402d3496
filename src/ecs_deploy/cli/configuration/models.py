"""CLI configuration models."""

from pydantic import BaseModel, ConfigDict, Field


class AwsConfig(BaseModel):
    """AWS configuration values for CLI deployment."""

    region: str = "us-east-1"
    profile: str | None = None


class DeployConfig(BaseModel):
    """Default values for deployments."""

    environment: str = "production"
    container_port: int = Field(default=3000, gt=0, lt=65536)
    task_cpu: str = "256"
    task_memory: str = "512"
    image_tag: str = "latest"


class CliConfig(BaseModel):
    """CLI configuration persisted between runs."""

    model_config = ConfigDict(extra="ignore")

    aws: AwsConfig = Field(default_factory=AwsConfig)
    deploy: DeployConfig = Field(default_factory=DeployConfig)

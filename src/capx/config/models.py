# src/capx/config/models.py

from typing import Dict, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProviderParams(BaseModel):
    """Credentials and placement for one provisioning session."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    region: str
    credentials: Dict[str, str] = Field(default_factory=dict)  # AccessKey / SecretKey
    github_token: Optional[str] = Field(default=None, alias="githubToken")
    managed: bool = False


class SCParameters(BaseModel):
    """StorageClass parameters; every field is optional so it can act as an override."""

    model_config = ConfigDict(populate_by_name=True)

    type: Optional[str] = None
    fs_type: Optional[str] = Field(default=None, alias="fsType")
    encrypted: Optional[bool] = None
    kms_key_id: Optional[str] = Field(default=None, alias="kmsKeyId")


class StorageClassRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_: str = Field(default="standard", alias="class")
    encryption_kms_key: Optional[str] = Field(default=None, alias="encryptionKmsKey")
    parameters: SCParameters = Field(default_factory=SCParameters)


class TimeoutSettings(BaseModel):
    api_seconds: float = 30.0        # AWS connect/read timeout
    command_seconds: float = 300.0   # kubectl / clusterawsadm


class NodeSpec(BaseModel):
    """Where cluster commands run."""

    kind: Literal["local", "container", "ssh"] = "container"
    container: str = "kind-control-plane"
    host: Optional[str] = None
    port: int = 22
    username: str = "root"
    password: Optional[str] = None
    pkey_path: Optional[str] = None


class ProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    provider: Literal["aws"] = "aws"
    managed: Optional[bool] = None  # mirrors params.managed
    params: ProviderParams
    storage_class: StorageClassRequest = Field(default_factory=StorageClassRequest)
    node: NodeSpec = Field(default_factory=NodeSpec)
    kubeconfig: str = "/kind/worker-cluster.kubeconfig"
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)

    @model_validator(mode="after")
    def _sync_managed(self) -> "ProviderConfig":
        if self.managed is None:
            self.managed = self.params.managed
        elif "managed" in self.params.model_fields_set and self.params.managed != self.managed:
            raise ValueError("managed and params.managed disagree")
        else:
            self.params = self.params.model_copy(update={"managed": self.managed})
        return self

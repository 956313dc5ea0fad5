from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BLOBGATE_", env_file=".env", extra="ignore", populate_by_name=True
    )

    app_name: str = "blobgate"
    env: str = "dev"
    host: str = "0.0.0.0"  # nosec B104 - intentional for container deployments
    port: int = 8080

    # Logging
    log_level: str = "INFO"
    log_json: bool | None = None  # None: JSON everywhere except env=dev

    # Backend selection: "direct" (Azure SDK) or "binding" (Dapr output binding)
    blob_backend: str = Field(default="direct", validation_alias="BLOB_BACKEND")
    default_page_size: int = Field(default=50, validation_alias="BLOB_PAGE_SIZE")
    operation_timeout: float | None = Field(default=None, validation_alias="BLOB_TIMEOUT")

    # AzureBlob section (AzureBlob__AccountName etc.)
    azure_account_name: str | None = Field(default=None, validation_alias="AZUREBLOB__ACCOUNTNAME")
    azure_container_name: str | None = Field(
        default=None, validation_alias="AZUREBLOB__CONTAINERNAME"
    )
    azure_blob_url: str | None = Field(default=None, validation_alias="AZUREBLOB__BLOBURL")
    azure_sas_url: str | None = Field(default=None, validation_alias="AZUREBLOB__SASURL")
    azure_connection_string: str | None = Field(
        default=None, validation_alias="AZUREBLOB__CONNECTIONSTRING"
    )
    azure_auth_mode: str = Field(default="KEY", validation_alias="AZUREBLOB__USEAUTHMODE")

    # Dapr output binding (when blob_backend="binding")
    dapr_http_endpoint: str = Field(
        default="http://localhost:3500", validation_alias="DAPR_HTTP_ENDPOINT"
    )
    dapr_binding_name: str = Field(default="azblob-storage", validation_alias="DAPR_BINDING_NAME")
    dapr_api_token: str | None = Field(default=None, validation_alias="DAPR_API_TOKEN")
    dapr_timeout: float = Field(default=30.0, validation_alias="DAPR_TIMEOUT")

    @property
    def use_json_logs(self) -> bool:
        if self.log_json is not None:
            return self.log_json
        return self.env != "dev"


settings = Settings()

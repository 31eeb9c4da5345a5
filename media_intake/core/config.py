from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    auth_key: str = Field(default="", alias="AUTH_KEY")
    image_hostname: str = Field(default="images.localhost", alias="IMAGE_HOSTNAME")
    files_hostname: str = Field(default="files.localhost", alias="FILES_HOSTNAME")
    upload_hostname: str = Field(default="", alias="UPLOAD_HOSTNAME")
    public_scheme: str = Field(default="", alias="PUBLIC_SCHEME")
    max_upload_mb: int = Field(default=100, alias="MAX_UPLOAD_MB")
    storage_driver: str = Field(default="local", alias="STORAGE_DRIVER")
    local_storage_path: str = Field(default="./storage/bucket", alias="LOCAL_STORAGE_PATH")
    s3_bucket: str = Field(default="", alias="S3_BUCKET")
    s3_endpoint_url: str = Field(default="", alias="S3_ENDPOINT_URL")
    s3_region: str = Field(default="auto", alias="S3_REGION")
    s3_access_key: str = Field(default="", alias="S3_ACCESS_KEY")
    s3_secret_key: str = Field(default="", alias="S3_SECRET_KEY")
    dedup_strategy: str = Field(default="scan", alias="DEDUP_STRATEGY")
    database_url: str = Field(default="sqlite:///./storage/media_intake.db", alias="DATABASE_URL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


settings = Settings()

from pydantic import BaseModel, field_validator


class BlobFields(BaseModel):
    filename:     str
    byte_size:    int
    checksum:     str
    content_type: str

    @field_validator("filename")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("filename cannot be empty")
        return v.strip()


class DirectUpload(BaseModel):
    url:     str
    headers: dict[str, str]


class DirectUploadResponse(BaseModel):
    direct_upload:  DirectUpload
    blob_signed_id: str
    blob_id:        int

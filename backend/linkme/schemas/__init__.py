"""
LinkMe Backend - Request/Response Schemas
===========================================

Pydantic models for every API body. Response models that are built from
ORM rows set model_config = {"from_attributes": True}.
"""

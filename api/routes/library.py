from __future__ import annotations

import uuid
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError

from readus.library import CollectionRecord, LibraryServices, TagRecord

from api.dependencies import document_summary, get_services, require_document
from api.schemas import CollectionCreate, CollectionUpdate, TagCreate

router = APIRouter(tags=["library"])


@router.get("/tags")
def list_tags(services: LibraryServices = Depends(get_services)):
    return [asdict(t) for t in services.repository.list_tags()]


@router.post("/tags")
def create_tag(body: TagCreate, services: LibraryServices = Depends(get_services)):
    tag = TagRecord(id=uuid.uuid4().hex, name=body.name.strip(), color=body.color)
    try:
        services.repository.insert_tag(tag)
    except IntegrityError:
        raise HTTPException(status_code=409, detail=f"Tag already exists: {tag.name}")
    return asdict(tag)


@router.delete("/tags/{tag_id}")
def delete_tag(tag_id: str, services: LibraryServices = Depends(get_services)):
    if not services.repository.delete_tag(tag_id):
        raise HTTPException(status_code=404, detail=f"Tag not found: {tag_id}")
    return {"status": "deleted", "tag_id": tag_id}


@router.get("/tags/{tag_id}/documents")
def list_tag_documents(tag_id: str, services: LibraryServices = Depends(get_services)):
    return [document_summary(d) for d in services.repository.list_documents_for_tag(tag_id)]


@router.get("/collections")
def list_collections(parent_id: Optional[str] = None, root_only: bool = False, services: LibraryServices = Depends(get_services)):
    repo = services.repository
    if parent_id or root_only:
        collections = repo.list_child_collections(parent_id)
    else:
        collections = repo.list_collections()
    return [asdict(c) for c in collections]


@router.post("/collections")
def create_collection(body: CollectionCreate, services: LibraryServices = Depends(get_services)):
    if body.parent_id and not services.repository.get_collection(body.parent_id):
        raise HTTPException(status_code=404, detail=f"Collection not found: {body.parent_id}")
    collection = CollectionRecord(id=uuid.uuid4().hex, **body.model_dump())
    services.repository.insert_collection(collection)
    return asdict(collection)


@router.patch("/collections/{collection_id}")
def update_collection(collection_id: str, body: CollectionUpdate, services: LibraryServices = Depends(get_services)):
    if not services.repository.get_collection(collection_id):
        raise HTTPException(status_code=404, detail=f"Collection not found: {collection_id}")
    if body.parent_id == collection_id:
        raise HTTPException(status_code=400, detail="A collection cannot be its own parent")
    services.repository.update_collection(collection_id, **body.model_dump(exclude_unset=True))
    return asdict(services.repository.get_collection(collection_id))


@router.delete("/collections/{collection_id}")
def delete_collection(collection_id: str, services: LibraryServices = Depends(get_services)):
    if not services.repository.delete_collection(collection_id):
        raise HTTPException(status_code=404, detail=f"Collection not found: {collection_id}")
    return {"status": "deleted", "collection_id": collection_id}


@router.get("/collections/{collection_id}/documents")
def list_collection_documents(collection_id: str, services: LibraryServices = Depends(get_services)):
    return [document_summary(d) for d in services.repository.list_collection_documents(collection_id)]


@router.put("/collections/{collection_id}/documents/{document_id}")
def add_collection_document(collection_id: str, document_id: str, services: LibraryServices = Depends(get_services)):
    if not services.repository.get_collection(collection_id):
        raise HTTPException(status_code=404, detail=f"Collection not found: {collection_id}")
    require_document(services, document_id)
    services.repository.add_document_to_collection(collection_id, document_id)
    return {"collection_id": collection_id, "document_id": document_id}


@router.delete("/collections/{collection_id}/documents/{document_id}")
def remove_collection_document(collection_id: str, document_id: str, services: LibraryServices = Depends(get_services)):
    services.repository.remove_document_from_collection(collection_id, document_id)
    return {"collection_id": collection_id, "document_id": document_id}

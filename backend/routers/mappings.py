import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from exceptions import StoreError
from schemas import ClassificationResponse, MerchantMappingCreate, MerchantMappingResponse
from services.merchant_classifier import MerchantClassifier, get_classifier

logger = logging.getLogger("Tally.Mappings")

router = APIRouter()


@router.get("/merchant-mappings", response_model=list[MerchantMappingResponse])
def list_mappings(classifier: MerchantClassifier = Depends(get_classifier)):
    """All merchant mappings, ordered by raw pattern."""
    try:
        mappings = classifier.store.list_all()
    except StoreError as e:
        logger.error(f"Error loading merchant mappings: {e}")
        raise HTTPException(status_code=500, detail="Failed to load merchant mappings")
    return [MerchantMappingResponse.model_validate(m) for m in mappings]


@router.post("/merchant-mappings", response_model=MerchantMappingResponse, status_code=201)
def create_mapping(
    body: MerchantMappingCreate,
    classifier: MerchantClassifier = Depends(get_classifier),
):
    """Add a mapping; it takes effect for the next classification."""
    try:
        mapping = classifier.add_mapping(
            body.raw_pattern,
            body.clean_name,
            category=body.category,
            pattern_type=body.pattern_type,
        )
    except StoreError as e:
        logger.error(f"Error adding merchant mapping: {e}")
        raise HTTPException(status_code=500, detail="Failed to add merchant mapping")
    return MerchantMappingResponse.model_validate(mapping)


@router.get("/merchant-mappings/classify", response_model=ClassificationResponse)
def classify_merchant(
    merchant: str = Query(..., min_length=1),
    classifier: MerchantClassifier = Depends(get_classifier),
):
    """Preview how a raw merchant string would be classified."""
    result = classifier.classify(merchant)
    return ClassificationResponse(merchant=merchant, clean_name=result.clean_name, category=result.category)

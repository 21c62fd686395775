"""
Candidate field paths per upstream resource, most specific first.

Upstream payload shapes drift between product types, markets and API
revisions; add a new path to the relevant tuple when a field moves.
"""

# Market product-details resource
DETAILS_TITLE = ("product.title",)
DETAILS_DESCRIPTION = ("product.description", "product.typeName")
DETAILS_PRODUCT_URL = ("product.productUrl", "product.pipUrl")
DETAILS_IMAGE_URL = ("product.images.0.imageUrl", "product.images.0.url", "product.mainImage.url")
DETAILS_PRICE_RAW = ("product.pricePackage.includingVat.rawPrice",)
DETAILS_PRICE_TEXT = ("product.pricePackage.includingVat.sellingPrice",)

# Store-specific scan resource
_CARD = "presentationSection.productCard"

SCAN_TITLE = (f"{_CARD}.product.title",)
SCAN_DESCRIPTION = (f"{_CARD}.product.description", f"{_CARD}.product.typeName")
SCAN_PRODUCT_URL = (f"{_CARD}.product.productUrl",)
SCAN_IMAGE_URL = (f"{_CARD}.product.imageUrl", f"{_CARD}.product.images.0.imageUrl")
SCAN_PRICE_RAW = (f"{_CARD}.product.pricePackage.includingVat.rawPrice",)
SCAN_PRICE_TEXT = (f"{_CARD}.product.pricePackage.includingVat.sellingPrice",)
SCAN_STATUS = (
    f"{_CARD}.product.availability.0.status",
    f"{_CARD}.product.availability.status",
    f"{_CARD}.product.availabilityStatus",
)
SCAN_DIVISION = (f"{_CARD}.salesLocation.location.division", f"{_CARD}.salesLocation.division")
SCAN_DEPARTMENT = (
    f"{_CARD}.salesLocation.location.department.names.0.name",
    f"{_CARD}.salesLocation.location.department.title",
)
SCAN_DEPARTMENT_CODE = (f"{_CARD}.salesLocation.location.department.id",)
SCAN_ITEM_LOCATION = (
    "buyingInstructionSection.salesPlaceList.0.itemLocation",
    f"{_CARD}.stockInfo.itemLocation",
)
SCAN_MAX_QUANTITY = ("buyingDecisionSection.quantityPicker.max",)

# Store-specific availability resource (first element of the array)
AVAILABILITY_DESCRIPTION = (
    "status.description",
    "status.text",
    "availability.status.description",
)
AVAILABILITY_STATUS = (
    "status.type",
    "status.status",
    "status.code",
    "availability.status.type",
    "availability.status.status",
)

# Buying-options resource (one element of ``availabilities``)
OPTION_ITEM_NO = ("itemKey.itemNo", "itemNo")
OPTION_UNIT_TYPE = ("classUnitKey.classUnitType", "classUnitType")
OPTION_UNIT_CODE = ("classUnitKey.classUnitCode", "classUnitCode")
OPTION_CHANNELS = {
    "cash_carry": "buyingOption.cashCarry",
    "click_collect": "buyingOption.clickCollect",
    "home_delivery": "buyingOption.homeDelivery",
}
CHANNEL_IN_RANGE = ("range.inRange",)
CHANNEL_QUANTITY = ("availability.quantity",)
CHANNEL_MESSAGE_TYPE = ("availability.probability.thisDay.messageType", "availability.probability.messageType")
CHANNEL_RESTOCKS = ("availability.restocks",)

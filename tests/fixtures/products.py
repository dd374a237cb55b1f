"""상품 테스트 자산 (엔진 독립)

- 단순 dict만 보관
- pytest fixture 선언하지 않음
"""

PRODUCTS = {
    "oat_milk": {
        "product_name": "Organic Oat Milk",
        "category": "Beverages",
        "brand": "Oatly",
    },
    "whole_milk_barcode": {
        "barcode": "0123456789012",
        "product_name": "Organic Whole Milk",
        "category": "Dairy",
    },
    "ground_beef": {
        "product_name": "Ground Beef 80/20",
        "category": None,
        "brand": None,
    },
    "fair_trade_coffee": {
        "product_name": "Fair Trade Coffee",
        "category": "Coffee",
        "brand": "Equal Exchange",
    },
    "smartphone": {
        "product_name": "Galaxy S24",
        "category": "Smartphone",
        "brand": "Samsung",
    },
}

# Open Food Facts 검색 응답의 products 원소
OFF_PRODUCTS = {
    "scored": {
        "product_name": "Organic Oat Drink",
        "brands": "Oatly,Oatly AB",
        "categories": "Beverages, Plant-based drinks",
        "ecoscore_score": 82,
        "ecoscore_data": {"agribalyse": {"co2_total": 0.31}},
        "labels_tags": ["en:organic", "en:eu-organic"],
        "image_front_url": "https://images.example/oat.jpg",
        "code": "7394376616501",
    },
    "grade_only": {
        "product_name": "Lentil Soup",
        "brands": "Amy's",
        "categories": "Soups",
        "ecoscore_grade": "b",
        "labels_tags": [],
    },
    "unscored": {
        "product_name": "Mystery Snack",
        "brands": "Acme",
        "categories": "Snacks",
    },
    "nameless": {
        "brands": "Acme",
        "ecoscore_score": 90,
    },
}

"""Services package"""

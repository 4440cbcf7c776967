"""StockFlow allocation and reservation service"""

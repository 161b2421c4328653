"""Domain packages - one per business area (schemas, service, router)"""

"""Jobs domain - job requests, lifecycle rules and on-site tracking"""

"""Auth domain - logins, registration and cookie sessions"""

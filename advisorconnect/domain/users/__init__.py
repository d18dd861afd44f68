"""Users domain - Advisor accounts"""

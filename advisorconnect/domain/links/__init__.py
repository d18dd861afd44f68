"""Links domain - Scheduling link creation, lookup and lifecycle status"""

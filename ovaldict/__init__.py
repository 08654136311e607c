"""Convert vendor OVAL advisory feeds into a CVE-indexed JSON corpus"""

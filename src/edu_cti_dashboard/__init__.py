"""
EduThreat-CTI Dashboard

Classification, filtering, pagination and aggregation of education-sector
cyber incidents served by the EduThreat-CTI API.
"""

__version__ = "1.0.0"

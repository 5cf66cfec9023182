"""LTI Attendance package.

Moodle LTI tool back-end organized by feature modules (attendance, cohorts,
semesters, moodle, lti) with a thin Flask controller layer over
service/repository layers.
"""

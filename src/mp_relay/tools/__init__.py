"""MCP tools for the Mixpanel REST APIs.

One module per API area; every tool is named mixpanel_<operation>:

- analytics: insights, segmentation, event and property queries, JQL
- funnels: saved funnels, retention, frequency
- profiles: profile queries and profile updates
- events: raw export, tracking, import
- groups: group profile updates
- identity: identify, alias, merge
- cohorts: saved cohorts
- management: annotations, lookup tables, Lexicon schemas
- gdpr: data retrieval and deletion requests
- connection: credential check
"""

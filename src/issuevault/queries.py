"""GraphQL documents for GitHub Projects v2.

``project_metadata_query`` and ``project_items_query`` are parameterised on
the root field (``organization`` or ``user``) because Projects v2 lives under
either owner type.
"""

from __future__ import annotations

ITEMS_PAGE_SIZE = 100

_PROJECT_METADATA = """
query GetProjectMetadata($owner: String!, $projectNumber: Int!) {
  %(root)s(login: $owner) {
    projectV2(number: $projectNumber) {
      id
      title
      fields(first: 50) {
        nodes {
          ... on ProjectV2SingleSelectField {
            id
            name
            options {
              id
              name
              color
            }
          }
          ... on ProjectV2IterationField {
            id
            name
            configuration {
              iterations {
                id
                title
                startDate
                duration
              }
            }
          }
        }
      }
    }
  }
}
"""

_PROJECT_ITEMS = """
query GetProjectItems($owner: String!, $projectNumber: Int!, $cursor: String) {
  %(root)s(login: $owner) {
    projectV2(number: $projectNumber) {
      items(first: %(page_size)d, after: $cursor) {
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          id
          fieldValues(first: 20) {
            nodes {
              ... on ProjectV2ItemFieldSingleSelectValue {
                name
                field {
                  ... on ProjectV2SingleSelectField {
                    name
                  }
                }
              }
              ... on ProjectV2ItemFieldIterationValue {
                title
                iterationId
                field {
                  ... on ProjectV2IterationField {
                    name
                  }
                }
              }
            }
          }
          content {
            ... on Issue {
              number
              title
              body
              url
              state
              repository {
                nameWithOwner
              }
              assignees(first: 10) {
                nodes {
                  login
                }
              }
              labels(first: 10) {
                nodes {
                  name
                }
              }
            }
          }
        }
      }
    }
  }
}
"""

GET_ISSUE = """
query GetIssue($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    issue(number: $number) {
      id
      number
      title
      url
      state
    }
  }
}
"""

UPDATE_ISSUE = """
mutation UpdateIssue($issueId: ID!, $title: String!, $body: String!) {
  updateIssue(input: { id: $issueId, title: $title, body: $body }) {
    issue {
      id
      number
      title
    }
  }
}
"""


def project_metadata_query(root_field: str) -> str:
    return _PROJECT_METADATA % {"root": root_field}


def project_items_query(root_field: str) -> str:
    return _PROJECT_ITEMS % {"root": root_field, "page_size": ITEMS_PAGE_SIZE}


__all__ = [
    "GET_ISSUE",
    "ITEMS_PAGE_SIZE",
    "UPDATE_ISSUE",
    "project_items_query",
    "project_metadata_query",
]
